"""FastAPI interface for the TuneFlow release engine."""

from uuid import uuid4

from fastapi import Body, FastAPI, File, Header, HTTPException, Query, UploadFile
from pydantic import ValidationError

from .interfaces.api_handlers import (
    IngestValidationError,
    audio_metadata_to_dict,
    checklist_from_payload,
    plan_limits_to_dict,
    resolve_plan_limits,
    search_all_platforms,
    validate_uploaded_audio,
)

app = FastAPI(title="TuneFlow Release Engine API", version="0.1.0")


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""

    return {"status": "ok"}


@app.post("/audio/validate")
async def validate_audio(
    audio: UploadFile = File(..., description="Lossless audio file (WAV or FLAC)"),
    x_correlation_id: str | None = Header(default=None, alias="X-Correlation-Id"),
) -> dict:
    """Check container, sample rate and bit depth before an audio file is accepted."""

    correlation_id = x_correlation_id or str(uuid4())
    payload = await audio.read()
    try:
        metadata = validate_uploaded_audio(payload, audio.filename, correlation_id)
    except IngestValidationError as error:
        if error.code in {"unsupported_container", "unsupported_codec", "lossy_container"}:
            status = 415
        else:
            status = 400
        raise HTTPException(status_code=status, detail=error.as_dict()) from error

    return {"correlation_id": correlation_id, "metadata": audio_metadata_to_dict(metadata)}


@app.get("/artists/search")
async def search_artists(
    q: str = Query(..., min_length=1, description="Artist name to search for."),
    limit: int = Query(5, ge=1, le=50),
) -> dict:
    """Search every platform; a failing platform contributes no candidates."""

    results = await search_all_platforms(q, limit)
    return {
        "query": q,
        "results": results,
        "not_found": not any(results.values()),
    }


@app.get("/plans/{plan_key}")
async def plan_limits(
    plan_key: str,
    refresh: bool = Query(False, description="Bypass the plan cache."),
) -> dict:
    limits = await resolve_plan_limits(plan_key, force_refresh=refresh)
    return plan_limits_to_dict(limits)


@app.post("/cover-art/checklist")
def cover_art_checklist(payload: dict = Body(...)) -> dict:
    """Map a compliance collaborator response onto the cover-art checklist."""

    try:
        return checklist_from_payload(payload)
    except (ValidationError, ValueError) as error:
        raise HTTPException(
            status_code=422,
            detail={"code": "invalid_compliance_payload", "message": str(error)},
        ) from error
