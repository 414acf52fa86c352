"""Collaborator endpoint configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

import httpx


@dataclass(frozen=True, slots=True)
class ServiceEndpoints:
    api_url: str
    timeout_seconds: float


@lru_cache(maxsize=1)
def load_service_endpoints() -> ServiceEndpoints:
    """Load collaborator endpoints from environment."""

    return ServiceEndpoints(
        api_url=os.getenv("TUNEFLOW_API_URL", "http://localhost:3001").rstrip("/"),
        timeout_seconds=float(os.getenv("TUNEFLOW_HTTP_TIMEOUT_SECONDS", "10")),
    )


def build_http_client(endpoints: ServiceEndpoints | None = None) -> httpx.AsyncClient:
    endpoints = endpoints or load_service_endpoints()
    return httpx.AsyncClient(base_url=endpoints.api_url, timeout=endpoints.timeout_seconds)
