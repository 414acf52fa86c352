"""Track/audio-file composition with referential exclusivity.

Every command builds the complete post-mutation collections, validates them, and
only then returns a new ``ReleaseComposition``. The previous value is untouched
when a command is rejected.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from typing import Any

from tuneflow.domain.models import AudioFile, Track, new_identifier


@dataclass(frozen=True, slots=True)
class CompositionError(ValueError):
    code: str
    message: str

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True, slots=True)
class ReleaseComposition:
    """Ordered track metadata plus the unordered pool of uploaded audio files."""

    tracks: tuple[Track, ...] = ()
    audio_files: tuple[AudioFile, ...] = ()

    def track(self, track_id: str) -> Track:
        for track in self.tracks:
            if track.id == track_id:
                return track
        raise CompositionError("track_not_found", f"Track {track_id} does not exist.")

    def audio_file(self, audio_file_id: str) -> AudioFile:
        for audio_file in self.audio_files:
            if audio_file.id == audio_file_id:
                return audio_file
        raise CompositionError("audio_file_not_found", f"Audio file {audio_file_id} does not exist.")

    def track_for_audio(self, audio_file_id: str) -> Track | None:
        for track in self.tracks:
            if track.audio_file_id == audio_file_id:
                return track
        return None

    def add_audio_file(self, audio_file: AudioFile, *, multi_track: bool) -> ReleaseComposition:
        """Accept a validated audio file.

        Single-track mode swaps the sole audio reference; multi-track mode appends
        the file together with a paired track titled after the file name.
        """

        if not multi_track:
            sole_track = self.tracks[0] if self.tracks else Track(id=new_identifier())
            return _commit(
                tracks=(replace(sole_track, audio_file_id=audio_file.id), *self.tracks[1:]),
                audio_files=(audio_file,),
            )

        paired_track = Track(
            id=new_identifier(),
            title=audio_file.default_track_title,
            audio_file_id=audio_file.id,
        )
        return _commit(
            tracks=(*self.tracks, paired_track),
            audio_files=(*self.audio_files, audio_file),
        )

    def add_track(self, track: Track | None = None) -> ReleaseComposition:
        return _commit(tracks=(*self.tracks, track or Track(id=new_identifier())), audio_files=self.audio_files)

    def update_track(self, track_id: str, **changes: Any) -> ReleaseComposition:
        if "audio_file_id" in changes or "id" in changes:
            raise CompositionError("immutable_field", "Use link_track_to_audio to change a track's audio file.")
        self.track(track_id)
        return _commit(
            tracks=tuple(replace(track, **changes) if track.id == track_id else track for track in self.tracks),
            audio_files=self.audio_files,
        )

    def link_track_to_audio(self, track_id: str, audio_file_id: str | None) -> ReleaseComposition:
        """Point a track at an audio file, or unlink it when ``audio_file_id`` is empty."""

        self.track(track_id)
        target = audio_file_id or None
        if target is not None:
            self.audio_file(target)
            holder = self.track_for_audio(target)
            if holder is not None and holder.id != track_id:
                raise CompositionError(
                    "audio_file_already_linked",
                    f"Audio file {target} is already linked to track '{holder.title or holder.id}'.",
                )
        return _commit(
            tracks=tuple(
                replace(track, audio_file_id=target) if track.id == track_id else track for track in self.tracks
            ),
            audio_files=self.audio_files,
        )

    def remove_track(self, track_id: str) -> ReleaseComposition:
        """Drop a track together with the audio file it referenced."""

        removed = self.track(track_id)
        return _commit(
            tracks=tuple(track for track in self.tracks if track.id != track_id),
            audio_files=tuple(
                audio_file for audio_file in self.audio_files if audio_file.id != removed.audio_file_id
            ),
        )

    def remove_audio_file(self, audio_file_id: str) -> ReleaseComposition:
        """Drop an audio file; tracks that referenced it become unlinked."""

        self.audio_file(audio_file_id)
        return _commit(
            tracks=tuple(
                replace(track, audio_file_id=None) if track.audio_file_id == audio_file_id else track
                for track in self.tracks
            ),
            audio_files=tuple(audio_file for audio_file in self.audio_files if audio_file.id != audio_file_id),
        )

    def replace_audio_file(self, audio_file: AudioFile) -> ReleaseComposition:
        self.audio_file(audio_file.id)
        return _commit(
            tracks=self.tracks,
            audio_files=tuple(audio_file if item.id == audio_file.id else item for item in self.audio_files),
        )

    def unassigned_audio_files(self, excluding_track_id: str | None = None) -> tuple[AudioFile, ...]:
        """Audio files a track's selector may offer: free ones plus the track's own."""

        taken = {
            track.audio_file_id
            for track in self.tracks
            if track.audio_file_id and track.id != excluding_track_id
        }
        return tuple(audio_file for audio_file in self.audio_files if audio_file.id not in taken)

    def tracks_missing_audio(self) -> tuple[Track, ...]:
        return tuple(track for track in self.tracks if not track.audio_file_id)


def validate_composition(tracks: tuple[Track, ...], audio_files: tuple[AudioFile, ...]) -> None:
    duplicate_tracks = [key for key, count in Counter(track.id for track in tracks).items() if count > 1]
    if duplicate_tracks:
        raise CompositionError("duplicate_track", f"Duplicate track identifiers: {', '.join(duplicate_tracks)}.")

    known_audio = Counter(audio_file.id for audio_file in audio_files)
    duplicate_audio = [key for key, count in known_audio.items() if count > 1]
    if duplicate_audio:
        raise CompositionError("duplicate_audio_file", f"Duplicate audio file identifiers: {', '.join(duplicate_audio)}.")

    linked = Counter(track.audio_file_id for track in tracks if track.audio_file_id)
    shared = [key for key, count in linked.items() if count > 1]
    if shared:
        raise CompositionError("audio_file_already_linked", f"Audio files linked to more than one track: {', '.join(shared)}.")

    dangling = [key for key in linked if key not in known_audio]
    if dangling:
        raise CompositionError("dangling_audio_reference", f"Tracks reference unknown audio files: {', '.join(dangling)}.")


def _commit(*, tracks: tuple[Track, ...], audio_files: tuple[AudioFile, ...]) -> ReleaseComposition:
    validate_composition(tracks, audio_files)
    return ReleaseComposition(tracks=tracks, audio_files=audio_files)
