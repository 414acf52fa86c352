"""Artist identity resolution across streaming platforms.

Each artist-name field (main, secondary N, track N) owns a debounce timer and a
monotonically increasing request token. A keystroke bumps the token and
restarts the timer; a search response is applied only if its token is still the
field's latest, so late responses from superseded requests are discarded no
matter when they arrive. The three platform searches run concurrently and each
branch degrades to an empty list on failure.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Sequence

from tuneflow.application.ports import ArtistSearchPort
from tuneflow.domain.models import ArtistProfile, ProfileSelection, ProfileState
from tuneflow.domain.policies import PlanLimits
from tuneflow.domain.release import Release
from tuneflow.release_options import Platform

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5
DEFAULT_MIN_QUERY_LENGTH = 3
DEFAULT_RESULT_LIMIT = 5


@dataclass(frozen=True, slots=True)
class ArtistField:
    """Identifies one artist-name input: ``main``, ``secondary`` or ``track`` plus an index."""

    scope: str
    index: int = 0

    def __str__(self) -> str:
        return self.scope if self.scope == "main" else f"{self.scope}[{self.index}]"


MAIN_ARTIST_FIELD = ArtistField("main")


@dataclass(frozen=True, slots=True)
class SearchResults:
    """Candidates returned for one query, per platform."""

    query: str
    token: int
    candidates: Mapping[Platform, tuple[ArtistProfile, ...]]

    def for_platform(self, platform: Platform) -> tuple[ArtistProfile, ...]:
        return self.candidates.get(platform, ())

    @property
    def not_found(self) -> bool:
        """Informational: a completed search found nobody on any platform."""

        return not any(self.candidates.values())


ResultsListener = Callable[[ArtistField, SearchResults], None]


class ArtistRosterResolver:
    """Debounced, token-guarded artist search over several platform collaborators."""

    def __init__(
        self,
        search_clients: Mapping[Platform, ArtistSearchPort],
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        min_query_length: int = DEFAULT_MIN_QUERY_LENGTH,
        result_limit: int = DEFAULT_RESULT_LIMIT,
        on_results: ResultsListener | None = None,
    ) -> None:
        self.search_clients = dict(search_clients)
        self.debounce_seconds = debounce_seconds
        self.min_query_length = min_query_length
        self.result_limit = result_limit
        self.on_results = on_results
        self._tokens: dict[ArtistField, int] = {}
        self._timers: dict[ArtistField, asyncio.Task[None]] = {}
        self._inflight: set[asyncio.Task[SearchResults | None]] = set()
        self._views: dict[ArtistField, SearchResults] = {}
        self._active: ArtistField | None = None

    @property
    def active_field(self) -> ArtistField | None:
        return self._active

    def latest_token(self, artist_field: ArtistField) -> int:
        return self._tokens.get(artist_field, 0)

    def results_for(self, artist_field: ArtistField) -> SearchResults | None:
        return self._views.get(artist_field)

    def name_changed(self, artist_field: ArtistField, name: str) -> None:
        """Register a keystroke-level edit; restarts the field's debounce timer.

        Must be called from within a running event loop.
        """

        token = self._bump(artist_field)
        self._cancel_timer(artist_field)
        query = name.strip()
        if len(query) < self.min_query_length:
            self._views.pop(artist_field, None)
            return
        loop = asyncio.get_running_loop()
        self._timers[artist_field] = loop.create_task(self._debounce(artist_field, query, token))

    async def search_now(self, artist_field: ArtistField, name: str) -> SearchResults | None:
        """Search immediately, superseding any pending or in-flight search for the field."""

        token = self._bump(artist_field)
        self._cancel_timer(artist_field)
        query = name.strip()
        if len(query) < self.min_query_length:
            self._views.pop(artist_field, None)
            return None
        return await self._search_and_apply(artist_field, query, token)

    def activate(self, artist_field: ArtistField) -> None:
        """Move focus to ``artist_field``; other fields' displayed results are dropped.

        Stored profile selections are not touched. Searches still pending or in
        flight for other fields are invalidated.
        """

        if self._active == artist_field:
            return
        self._active = artist_field
        for other in list(self._views):
            if other != artist_field:
                del self._views[other]
        for other in list(self._timers):
            if other != artist_field:
                self._cancel_timer(other)
        for other in list(self._tokens):
            if other != artist_field:
                self._bump(other)

    def remove_field(self, artist_field: ArtistField) -> None:
        """Forget a field that no longer exists; its pending and in-flight searches are dropped."""

        self._bump(artist_field)
        self._cancel_timer(artist_field)
        self._views.pop(artist_field, None)
        if self._active == artist_field:
            self._active = None

    def clear_selection(self, artist_field: ArtistField, artist_name: str) -> ProfileSelection:
        """Return an empty selection; re-search when the name is set but nothing is cached."""

        if artist_name.strip() and self.results_for(artist_field) is None:
            self.name_changed(artist_field, artist_name)
        return ProfileSelection.unresolved()

    async def fan_out(self, query: str) -> dict[Platform, tuple[ArtistProfile, ...]]:
        """Query every platform concurrently; a failing branch yields no candidates."""

        platforms = list(self.search_clients)
        branches = await asyncio.gather(*(self._search_platform(platform, query) for platform in platforms))
        return dict(zip(platforms, branches))

    async def wait_idle(self) -> None:
        """Wait until no debounce timer or search is outstanding."""

        while self._timers or self._inflight:
            await asyncio.gather(*self._timers.values(), *self._inflight, return_exceptions=True)

    async def aclose(self) -> None:
        for artist_field in list(self._timers):
            self._cancel_timer(artist_field)
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    def _bump(self, artist_field: ArtistField) -> int:
        token = self._tokens.get(artist_field, 0) + 1
        self._tokens[artist_field] = token
        return token

    def _cancel_timer(self, artist_field: ArtistField) -> None:
        timer = self._timers.pop(artist_field, None)
        if timer is not None and not timer.done():
            timer.cancel()

    async def _debounce(self, artist_field: ArtistField, query: str, token: int) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if self._timers.get(artist_field) is asyncio.current_task():
            del self._timers[artist_field]
        # The search runs as its own task so a later keystroke cancels only timers, never requests.
        task = asyncio.get_running_loop().create_task(self._search_and_apply(artist_field, query, token))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _search_and_apply(self, artist_field: ArtistField, query: str, token: int) -> SearchResults | None:
        candidates = await self.fan_out(query)
        if self._tokens.get(artist_field) != token:
            logger.debug(
                "Discarding stale artist search response",
                extra={"field": str(artist_field), "token": token, "latest_token": self._tokens.get(artist_field)},
            )
            return None
        results = SearchResults(query=query, token=token, candidates=candidates)
        self._views[artist_field] = results
        if results.not_found:
            logger.info("Artist not found on any platform", extra={"field": str(artist_field), "query": query})
        if self.on_results is not None:
            self.on_results(artist_field, results)
        return results

    async def _search_platform(self, platform: Platform, query: str) -> tuple[ArtistProfile, ...]:
        client = self.search_clients[platform]
        try:
            return tuple(await client.search(query, self.result_limit))
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "Artist search failed; treating platform as having no results.",
                extra={"platform": platform.value, "query": query},
                exc_info=error,
            )
            return ()


def hydrate_selection(selection: ProfileSelection, candidates: Iterable[ArtistProfile]) -> ProfileSelection:
    """Upgrade a raw-URL selection to the matching rich profile; leave every other shape alone."""

    if selection.state is ProfileState.MANUAL_URL and selection.url:
        for candidate in candidates:
            if candidate.matches_reference(selection.url):
                return ProfileSelection.resolved(candidate)
        return selection
    if selection.state in (ProfileState.UNRESOLVED, ProfileState.RESOLVED, ProfileState.NEW):
        return selection
    raise ValueError(f"Unhandled profile state: {selection.state}")


def hydrate_profiles(
    profiles: Mapping[Platform, ProfileSelection],
    results: SearchResults,
) -> dict[Platform, ProfileSelection]:
    return {platform: hydrate_selection(selection, results.for_platform(platform)) for platform, selection in profiles.items()}


@dataclass(frozen=True, slots=True)
class ArtistIdentity:
    """An artist identity the account has released under before."""

    name: str
    profiles: Mapping[Platform, ProfileSelection] = field(default_factory=dict)


def prefill_main_artist(release: Release, limits: PlanLimits, prior_identities: Sequence[ArtistIdentity]) -> bool:
    """Fill the main artist from the account's only prior identity on single-artist plans.

    Never overwrites a name the user already typed, and never replaces a profile
    selection the user already made. Returns whether anything was prefilled.
    """

    if limits.artist_limit != 1 or len(prior_identities) != 1:
        return False
    if release.primary_artist.strip():
        return False
    identity = prior_identities[0]
    release.primary_artist = identity.name
    for platform, selection in identity.profiles.items():
        if not release.profiles.get(platform, ProfileSelection.unresolved()).is_set:
            release.profiles[platform] = selection
    return True
