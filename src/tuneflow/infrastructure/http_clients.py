"""httpx adapters for the release service's remote collaborators.

All clients share one ``httpx.AsyncClient`` whose ``base_url`` points at the
release API; the caller owns the client's lifetime.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

import httpx
from pydantic import ValidationError

from tuneflow.application.cover_art import CoverArtServiceError
from tuneflow.application.ports import (
    ComplianceReport,
    CoverArtContext,
    PlanRecord,
    SubmissionReceipt,
    SubmissionServiceError,
    UploadReceipt,
)
from tuneflow.domain.models import ArtistProfile
from tuneflow.domain.policies import FieldRule
from tuneflow.infrastructure.wire_schema import (
    ErrorPayload,
    PlanPayload,
    SubmissionResponse,
    UploadResponse,
    parse_search_hits,
    report_from_payload,
)
from tuneflow.release_options import Platform

logger = logging.getLogger(__name__)

PLAN_CACHE_TTL_SECONDS = 300.0


@dataclass(slots=True)
class HttpArtistSearchClient:
    """Artist search for one platform via ``/integrations/<platform>/search``."""

    client: httpx.AsyncClient
    platform: Platform

    async def search(self, query: str, limit: int) -> list[ArtistProfile]:
        response = await self.client.get(
            f"/integrations/{self.platform.value}/search",
            params={"q": query, "limit": limit},
        )
        response.raise_for_status()
        return parse_search_hits(response.json(), self.platform)[:limit]


def build_search_clients(client: httpx.AsyncClient) -> dict[Platform, HttpArtistSearchClient]:
    return {platform: HttpArtistSearchClient(client, platform) for platform in Platform}


@dataclass(slots=True)
class HttpPlanSource:
    """Plan data from ``GET /plans``, cached for a fixed TTL.

    A failed refresh serves the previously cached plan list when there is one.
    """

    client: httpx.AsyncClient
    ttl_seconds: float = PLAN_CACHE_TTL_SECONDS
    clock: Callable[[], float] = time.monotonic
    _plans: dict[str, PlanPayload] | None = None
    _fetched_at: float = 0.0
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def fetch_limits(self, plan_key: str, *, force_refresh: bool = False) -> PlanRecord | None:
        plans = await self._load(force_refresh)
        plan = plans.get(plan_key)
        return plan.to_record() if plan is not None else None

    async def fetch_field_rules(self, plan_key: str, *, force_refresh: bool = False) -> Mapping[str, FieldRule]:
        plans = await self._load(force_refresh)
        plan = plans.get(plan_key)
        return plan.to_field_rules() if plan is not None else {}

    def clear(self) -> None:
        self._plans = None
        self._fetched_at = 0.0

    async def _load(self, force_refresh: bool) -> dict[str, PlanPayload]:
        async with self._lock:
            cached = self._plans
            if cached is not None and not force_refresh and (self.clock() - self._fetched_at) < self.ttl_seconds:
                return cached
            try:
                response = await self.client.get("/plans")
                response.raise_for_status()
                payload = response.json()
                if isinstance(payload, dict):
                    payload = payload.get("plans", [])
                plans = [PlanPayload.model_validate(item) for item in payload]
            except (httpx.HTTPError, ValidationError, ValueError) as error:
                if cached is not None:
                    logger.warning("Plan refresh failed; serving cached plans.", exc_info=error)
                    return cached
                raise
            self._plans = {plan.key: plan for plan in plans}
            self._fetched_at = self.clock()
            return self._plans


@dataclass(slots=True)
class HttpComplianceClient:
    """Cover-art compliance via ``POST /cover-art-validation/validate``."""

    client: httpx.AsyncClient

    async def validate(
        self,
        image: bytes,
        *,
        file_name: str,
        content_type: str,
        context: CoverArtContext,
    ) -> ComplianceReport:
        try:
            response = await self.client.post(
                "/cover-art-validation/validate",
                files={"image": (file_name, image, content_type)},
                data={"metadata": json.dumps(context.as_dict())},
            )
            response.raise_for_status()
            return report_from_payload(response.json())
        except httpx.HTTPError as error:
            raise CoverArtServiceError(f"Cover art validation request failed: {error}") from error
        except (ValidationError, ValueError) as error:
            raise CoverArtServiceError(
                "Cover art validation returned an unreadable response.",
                code="compliance_bad_response",
            ) from error


@dataclass(slots=True)
class HttpUploadTransport:
    """Uploads via ``/chunk_files/single`` and ``/chunk_files/upload``."""

    client: httpx.AsyncClient

    async def upload_whole(self, *, file_name: str, payload: bytes, content_type: str) -> UploadReceipt:
        response = await self.client.post(
            "/chunk_files/single",
            files={"file": (file_name, payload, content_type)},
        )
        response.raise_for_status()
        return UploadResponse.model_validate(response.json()).to_receipt()

    async def upload_chunk(
        self,
        *,
        session_id: str,
        chunk_index: int,
        total_chunks: int,
        chunk: bytes,
        file_name: str,
        content_type: str,
    ) -> UploadReceipt:
        response = await self.client.post(
            "/chunk_files/upload",
            files={"chunk": (file_name, chunk, content_type)},
            data={
                "identifier": session_id,
                "totalChunks": str(total_chunks),
                "currentChunk": str(chunk_index),
            },
        )
        response.raise_for_status()
        if not response.content:
            return UploadReceipt()
        return UploadResponse.model_validate(response.json()).to_receipt()


@dataclass(slots=True)
class HttpSubmissionClient:
    """Creates the release record via ``POST /releases``."""

    client: httpx.AsyncClient

    async def submit(self, payload: Mapping[str, Any]) -> SubmissionReceipt:
        try:
            response = await self.client.post("/releases", json=dict(payload))
        except httpx.HTTPError as error:
            raise SubmissionServiceError("submission_unavailable", f"Submission service unreachable: {error}") from error

        body = _json_or_empty(response)
        if response.is_error:
            parsed = ErrorPayload.model_validate(body) if isinstance(body, dict) else ErrorPayload()
            raise SubmissionServiceError(parsed.code, parsed.message, {**parsed.details, "status_code": response.status_code})
        try:
            return SubmissionResponse.model_validate(body).to_receipt(body)
        except ValidationError as error:
            raise SubmissionServiceError("submission_bad_response", "Submission response carried no release id.") from error


def _json_or_empty(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}
