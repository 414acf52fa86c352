"""CLI interface for the TuneFlow release engine."""

import json
from pathlib import Path

import typer

from .interfaces.cli_handlers import describe_plan, search_artists, upload_path, validate_audio_paths
from .storage import StorageWriteError
from .application.upload_coordinator import UploadError

app = typer.Typer(help="TuneFlow release engine command line interface")


@app.command("validate-audio")
def validate_audio_command(
    paths: list[Path] = typer.Argument(..., help="WAV/FLAC files to check against the broadcast profile."),
) -> None:
    """Check container, sample rate and bit depth of one or more audio files."""

    results = validate_audio_paths(paths)
    rejected = 0
    for item in results:
        if item["status"] == "accepted":
            typer.echo(
                "[OK] "
                f"{item['path']} {item['sample_rate_hz']}Hz/{item['bit_depth']}-bit "
                f"channels={item['channel_count']} duration={item['duration_seconds']:.2f}s"
            )
        else:
            rejected += 1
            typer.echo(f"[REJECTED] {item['path']} code={item['code']} message={item['message']}")

    typer.echo(f"Summary: total={len(results)} accepted={len(results) - rejected} rejected={rejected}")
    if rejected:
        raise typer.Exit(code=1)


@app.command("plan-limits")
def plan_limits_command(
    plan_key: str = typer.Argument(..., help="Plan key, e.g. free, solo, creator_plus."),
    refresh: bool = typer.Option(False, "--refresh", help="Bypass the plan cache."),
) -> None:
    """Print the artist ceiling, formats and field rules for a plan."""

    typer.echo(json.dumps(describe_plan(plan_key, refresh=refresh), indent=2))


@app.command("search-artists")
def search_artists_command(
    name: str = typer.Argument(..., help="Artist name to search for."),
    limit: int = typer.Option(5, "--limit", min=1, max=50, help="Maximum candidates per platform."),
) -> None:
    """Search Spotify, Apple Music and YouTube for an artist name."""

    results = search_artists(name, limit)
    for platform, candidates in results.items():
        typer.echo(f"{platform}:")
        if not candidates:
            typer.echo("  (no results)")
        for candidate in candidates:
            caption = f" - {candidate['caption']}" if candidate.get("caption") else ""
            typer.echo(f"  {candidate['name']} [{candidate['id']}]{caption}")
    if not any(results.values()):
        typer.echo("Artist not found on any platform; a new profile will be created.")


@app.command("upload")
def upload_command(
    path: Path = typer.Argument(..., help="File to upload."),
    object_storage: bool = typer.Option(
        False,
        "--object-storage",
        help="Write directly to MinIO instead of the release API.",
    ),
    content_type: str | None = typer.Option(None, "--content-type", help="Override the detected content type."),
) -> None:
    """Upload an asset whole or in chunks and print its storage path."""

    def report(percent: int) -> None:
        typer.echo(f"Progress: {percent}%")

    try:
        stored_path = upload_path(path, to_object_storage=object_storage, content_type=content_type, on_progress=report)
    except (UploadError, StorageWriteError, FileNotFoundError) as error:
        typer.echo(f"Upload failed: {error}", err=True)
        raise typer.Exit(code=1) from error
    typer.echo(f"Stored at: {stored_path}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
