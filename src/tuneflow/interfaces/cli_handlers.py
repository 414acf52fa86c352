"""CLI-facing handlers that delegate to application services."""

from __future__ import annotations

import asyncio
import mimetypes
from pathlib import Path
from typing import Any, Callable

from tuneflow.interfaces import api_handlers
from tuneflow.ingest_validation import IngestValidationError, validate_audio_file


def validate_audio_paths(paths: list[Path]) -> list[dict[str, Any]]:
    """Validate each file independently; one bad file does not stop the rest."""

    results: list[dict[str, Any]] = []
    for path in paths:
        try:
            metadata = validate_audio_file(path)
        except IngestValidationError as error:
            results.append({"path": str(path), "status": "rejected", **error.as_dict()})
            continue
        results.append({"path": str(path), "status": "accepted", **api_handlers.audio_metadata_to_dict(metadata)})
    return results


def describe_plan(plan_key: str, *, refresh: bool = False) -> dict[str, Any]:
    limits = asyncio.run(api_handlers.resolve_plan_limits(plan_key, force_refresh=refresh))
    return api_handlers.plan_limits_to_dict(limits)


def search_artists(name: str, limit: int) -> dict[str, list[dict[str, Any]]]:
    return asyncio.run(api_handlers.search_all_platforms(name, limit))


def upload_path(
    path: Path,
    *,
    to_object_storage: bool,
    content_type: str | None = None,
    on_progress: Callable[[int], None] | None = None,
) -> str:
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    resolved_type = content_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    stored = asyncio.run(
        api_handlers.upload_asset(
            path.read_bytes(),
            file_name=path.name,
            content_type=resolved_type,
            to_object_storage=to_object_storage,
            on_progress=on_progress,
        )
    )
    return stored.path
