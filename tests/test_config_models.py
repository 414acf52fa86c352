import json

import httpx
import pytest

from tuneflow.application.artist_roster import MAIN_ARTIST_FIELD
from tuneflow.application.cover_art import CoverArtInputError
from tuneflow.domain.policies import ReleaseRules
from tuneflow.interfaces.api_handlers import build_release_wizard
from tuneflow.utils.config import EngineConfig, UploadConfig, load_engine_config, load_engine_config_from_env


def test_engine_config_defaults_match_release_rules():
    config = EngineConfig()

    assert config.search.debounce_seconds == 0.5
    assert config.upload.chunk_size_bytes == 1024 * 1024
    assert config.upload.direct_upload_threshold_bytes == 5 * 1024 * 1024
    assert config.cover_art.max_bytes == 10 * 1024 * 1024
    assert config.release.min_lead_days == 7
    assert config.plans.cache_ttl_seconds == 300.0


def test_engine_config_parses_nested_sections():
    data = {
        "search": {"debounce_seconds": 0.25, "result_limit": 10},
        "upload": {"concurrency": 4, "max_retries": 3},
        "release": {"default_label": "Indie"},
    }

    config = EngineConfig.model_validate(data)

    assert config.search.result_limit == 10
    assert config.upload.concurrency == 4
    assert config.release.default_label == "Indie"


def test_upload_config_rejects_invalid_backoff():
    with pytest.raises(ValueError):
        UploadConfig.model_validate({"retry_backoff_base_seconds": 5.0, "retry_backoff_ceiling_seconds": 1.0})
    with pytest.raises(ValueError):
        UploadConfig.model_validate({"chunk_size_bytes": 0})


def test_load_engine_config_from_json_and_yaml(tmp_path):
    json_path = tmp_path / "engine.json"
    json_path.write_text(json.dumps({"plans": {"cache_ttl_seconds": 60}}), encoding="utf-8")
    yaml_path = tmp_path / "engine.yaml"
    yaml_path.write_text("cover_art:\n  min_dimension: 3000\n", encoding="utf-8")

    assert load_engine_config(json_path).plans.cache_ttl_seconds == 60
    assert load_engine_config(yaml_path).cover_art.min_dimension == 3000


def test_load_engine_config_from_env(monkeypatch, tmp_path):
    path = tmp_path / "engine.yml"
    path.write_text("search:\n  min_query_length: 4\n", encoding="utf-8")
    load_engine_config_from_env.cache_clear()
    monkeypatch.setenv("TUNEFLOW_CONFIG_PATH", str(path))

    try:
        assert load_engine_config_from_env().search.min_query_length == 4
    finally:
        load_engine_config_from_env.cache_clear()


@pytest.mark.asyncio
async def test_configured_values_reach_the_release_wizard():
    config = EngineConfig.model_validate(
        {
            "search": {"debounce_seconds": 0.2, "min_query_length": 4, "result_limit": 7},
            "upload": {"max_retries": 1},
            "cover_art": {"max_bytes": 2048, "min_dimension": 3000},
            "release": {"min_lead_days": 14, "default_label": "Indie"},
            "plans": {"cache_ttl_seconds": 30},
        }
    )

    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500))) as client:
        wizard = build_release_wizard(client, config=config)

        assert wizard.roster.debounce_seconds == 0.2
        assert wizard.roster.min_query_length == 4
        assert wizard.roster.result_limit == 7
        assert wizard.uploads.max_retries == 1
        assert wizard.cover_art.min_dimension == 3000
        assert wizard.assembler.rules == ReleaseRules(min_lead_days=14, default_label="Indie")
        assert wizard.cover_art_context().record_label == "Indie"
        assert await wizard.roster.search_now(MAIN_ARTIST_FIELD, "Nov") is None


@pytest.mark.asyncio
async def test_release_wizard_defaults_to_env_config(monkeypatch, tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text("cover_art:\n  max_bytes: 1024\n", encoding="utf-8")
    load_engine_config_from_env.cache_clear()
    monkeypatch.setenv("TUNEFLOW_CONFIG_PATH", str(path))

    try:
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500))) as client:
            wizard = build_release_wizard(client)
            with pytest.raises(CoverArtInputError) as exc:
                await wizard.set_cover_art(b"x" * 2048, file_name="cover.png", content_type="image/png")
    finally:
        load_engine_config_from_env.cache_clear()

    assert exc.value.code == "image_too_large"
