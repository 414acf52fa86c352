from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import json

from pydantic import BaseModel, Field, field_validator, model_validator


class SearchConfig(BaseModel):
    debounce_seconds: float = Field(0.5, gt=0.0, le=10.0)
    min_query_length: int = Field(3, ge=1)
    result_limit: int = Field(5, ge=1, le=50)


class UploadConfig(BaseModel):
    chunk_size_bytes: int = Field(1024 * 1024)
    direct_upload_threshold_bytes: int = Field(5 * 1024 * 1024)
    max_retries: int = Field(10, ge=0)
    retry_backoff_base_seconds: float = Field(1.0)
    retry_backoff_ceiling_seconds: float = Field(10.0)
    concurrency: int = Field(1, ge=1, le=16)

    @field_validator(
        "chunk_size_bytes",
        "direct_upload_threshold_bytes",
        "retry_backoff_base_seconds",
        "retry_backoff_ceiling_seconds",
    )
    @classmethod
    def _validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive.")
        return value

    @model_validator(mode="after")
    def _validate_backoff(self) -> "UploadConfig":
        if self.retry_backoff_ceiling_seconds < self.retry_backoff_base_seconds:
            raise ValueError("retry_backoff_ceiling_seconds must be >= retry_backoff_base_seconds.")
        return self


class CoverArtConfig(BaseModel):
    max_bytes: int = Field(10 * 1024 * 1024, gt=0)
    min_dimension: int = Field(1000, gt=0)


class ReleaseConfig(BaseModel):
    min_lead_days: int = Field(7, ge=0)
    default_label: str = "TuneFlow"
    default_isrc: str = "QZ-K6P-25-00001"


class PlansConfig(BaseModel):
    cache_ttl_seconds: float = Field(300.0, ge=0.0)


class EngineConfig(BaseModel):
    search: SearchConfig = Field(default_factory=SearchConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    cover_art: CoverArtConfig = Field(default_factory=CoverArtConfig)
    release: ReleaseConfig = Field(default_factory=ReleaseConfig)
    plans: PlansConfig = Field(default_factory=PlansConfig)


def load_engine_config(path: Path) -> EngineConfig:
    data = _load_config_data(path)
    return EngineConfig.model_validate(data)


def _load_config_data(path: Path) -> dict:
    if path.suffix.lower() in {".yaml", ".yml"}:
        import yaml

        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=1)
def load_engine_config_from_env() -> EngineConfig:
    """Load ``TUNEFLOW_CONFIG_PATH`` when set, else the built-in defaults."""

    raw_path = os.getenv("TUNEFLOW_CONFIG_PATH")
    if not raw_path:
        return EngineConfig()
    return load_engine_config(Path(raw_path))
