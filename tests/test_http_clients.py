from __future__ import annotations

import json

import httpx
import pytest

from tuneflow.application.cover_art import CoverArtServiceError
from tuneflow.application.ports import ComplianceStatus, CoverArtContext, DefectSeverity, SubmissionServiceError
from tuneflow.infrastructure.http_clients import (
    HttpArtistSearchClient,
    HttpComplianceClient,
    HttpPlanSource,
    HttpSubmissionClient,
    HttpUploadTransport,
)
from tuneflow.release_options import Platform


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="http://tuneflow.test", transport=httpx.MockTransport(handler))


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_artist_search_maps_hits_and_truncates() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "channels": [
                    {"id": 7, "name": "Nova", "channelUrl": "https://youtube.com/@nova", "followers": 12},
                    {"id": "8", "name": "Nova Tribute"},
                ]
            },
        )

    async with _client(handler) as client:
        profiles = await HttpArtistSearchClient(client, Platform.YOUTUBE).search("Nova", 1)

    assert seen[0].url.path == "/integrations/youtube/search"
    assert seen[0].url.params["q"] == "Nova"
    assert len(profiles) == 1
    assert profiles[0].external_id == "7"
    assert profiles[0].profile_url == "https://youtube.com/@nova"


@pytest.mark.asyncio
async def test_artist_search_raises_on_http_error() -> None:
    async with _client(lambda request: httpx.Response(503)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await HttpArtistSearchClient(client, Platform.SPOTIFY).search("Nova", 5)


@pytest.mark.asyncio
async def test_plan_source_caches_for_ttl_and_serves_stale_on_failure() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] > 1:
            return httpx.Response(500)
        return httpx.Response(
            200,
            json={
                "plans": [
                    {
                        "key": "enterprise",
                        "limits": {"maxArtists": -1, "allowConcurrent": True, "allowedFormats": ["single", "album"]},
                        "fieldRules": {"dolbyAtmos": {"allow": True, "required": False}},
                    }
                ]
            },
        )

    clock = _Clock()
    async with _client(handler) as client:
        source = HttpPlanSource(client, ttl_seconds=300, clock=clock)
        record = await source.fetch_limits("enterprise")
        rules = await source.fetch_field_rules("enterprise")
        clock.now = 301
        stale = await source.fetch_limits("enterprise")
        missing = await source.fetch_limits("unknown")

    assert record.artist_limit is None
    assert record.allowed_formats == ("single", "album")
    assert rules["dolby_atmos"].allow
    assert stale == record
    assert missing is None
    assert calls["count"] == 3


@pytest.mark.asyncio
async def test_plan_source_raises_without_cache() -> None:
    async with _client(lambda request: httpx.Response(502)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await HttpPlanSource(client).fetch_limits("free")


@pytest.mark.asyncio
async def test_compliance_client_posts_image_and_metadata() -> None:
    captured: dict[str, bytes] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = request.content
        return httpx.Response(
            200,
            json={
                "status": "approved",
                "errors": [{"code": "BLURRY_IMAGE", "message": "Soft", "severity": "warning"}],
                "issues": [{"code": "BLURRY_IMAGE", "message": "Soft", "severity": "warning"}],
            },
        )

    context = CoverArtContext(artist_name="Nova", track_title="Night Drive")
    async with _client(handler) as client:
        report = await HttpComplianceClient(client).validate(
            b"\x89PNG", file_name="cover.png", content_type="image/png", context=context
        )

    assert b'name="image"; filename="cover.png"' in captured["body"]
    assert json.dumps(context.as_dict()).encode() in captured["body"]
    assert report.status is ComplianceStatus.ACCEPTED
    assert len(report.defects) == 1
    assert report.defects[0].severity is DefectSeverity.WARNING


@pytest.mark.asyncio
async def test_compliance_client_wraps_failures() -> None:
    context = CoverArtContext(artist_name="Nova", track_title="Night Drive")
    async with _client(lambda request: httpx.Response(500)) as client:
        with pytest.raises(CoverArtServiceError) as unavailable:
            await HttpComplianceClient(client).validate(b"x", file_name="c.png", content_type="image/png", context=context)
    async with _client(lambda request: httpx.Response(200, json={"status": "maybe"})) as client:
        with pytest.raises(CoverArtServiceError) as unreadable:
            await HttpComplianceClient(client).validate(b"x", file_name="c.png", content_type="image/png", context=context)

    assert unavailable.value.code == "compliance_unavailable"
    assert unreadable.value.code == "compliance_bad_response"


@pytest.mark.asyncio
async def test_upload_transport_whole_and_chunk_requests() -> None:
    bodies: dict[str, bytes] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        bodies[request.url.path] = request.content
        if request.url.path == "/chunk_files/single":
            return httpx.Response(200, json={"path": "covers/c.png", "metaData": {"resolution": "3000x3000"}})
        if b'name="currentChunk"\r\n\r\n0' in request.content:
            return httpx.Response(200)
        return httpx.Response(200, json={"path": "audio/a.wav", "metaData": {"duration": 12.5}})

    async with _client(handler) as client:
        transport = HttpUploadTransport(client)
        whole = await transport.upload_whole(file_name="c.png", payload=b"img", content_type="image/png")
        partial = await transport.upload_chunk(
            session_id="1-a.wav", chunk_index=0, total_chunks=2, chunk=b"ab", file_name="a.wav", content_type="audio/wav"
        )
        final = await transport.upload_chunk(
            session_id="1-a.wav", chunk_index=1, total_chunks=2, chunk=b"cd", file_name="a.wav", content_type="audio/wav"
        )

    assert (whole.path, whole.width, whole.height) == ("covers/c.png", 3000, 3000)
    assert partial.path is None
    assert final.path == "audio/a.wav"
    assert final.duration_seconds == 12.5
    assert b'name="identifier"\r\n\r\n1-a.wav' in bodies["/chunk_files/upload"]
    assert b'name="chunk"; filename="a.wav"' in bodies["/chunk_files/upload"]


@pytest.mark.asyncio
async def test_submission_client_returns_receipt() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["title"] == "Night Drive"
        return httpx.Response(201, json={"_id": 99, "status": "In Process"})

    async with _client(handler) as client:
        receipt = await HttpSubmissionClient(client).submit({"title": "Night Drive"})

    assert receipt.release_id == "99"
    assert receipt.raw["status"] == "In Process"


@pytest.mark.asyncio
async def test_submission_client_maps_structured_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"code": "duplicate_release", "message": "Already submitted"})

    async with _client(handler) as client:
        with pytest.raises(SubmissionServiceError) as exc:
            await HttpSubmissionClient(client).submit({})

    assert exc.value.code == "duplicate_release"
    assert exc.value.details["status_code"] == 409


@pytest.mark.asyncio
async def test_submission_client_rejects_responses_without_id() -> None:
    async with _client(lambda request: httpx.Response(200, json={"ok": True})) as client:
        with pytest.raises(SubmissionServiceError) as exc:
            await HttpSubmissionClient(client).submit({})

    assert exc.value.code == "submission_bad_response"


@pytest.mark.asyncio
async def test_submission_client_maps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(SubmissionServiceError) as exc:
            await HttpSubmissionClient(client).submit({})

    assert exc.value.code == "submission_unavailable"
