"""Atomic whole-file or chunked upload of release assets."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Any, Awaitable, Callable

import backoff

from tuneflow.application.ports import UploadReceipt, UploadTransport
from tuneflow.domain.models import StoredAsset

logger = logging.getLogger(__name__)

CHUNK_SIZE_BYTES = 1024 * 1024
DIRECT_UPLOAD_THRESHOLD_BYTES = 5 * 1024 * 1024
MAX_CHUNK_RETRIES = 10
RETRY_BACKOFF_BASE_SECONDS = 1.0
RETRY_BACKOFF_CEILING_SECONDS = 10.0

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

ProgressCallback = Callable[[int], None]


class UploadError(RuntimeError):
    """The upload failed as a whole; nothing usable was stored."""

    def __init__(self, message: str, *, code: str = "upload_failed", file_name: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.file_name = file_name

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


def session_identifier(file_name: str, *, now_ms: int | None = None) -> str:
    """Build ``<epoch-millis>-<sanitised file name>`` for one chunked upload session."""

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{now_ms}-{_UNSAFE_NAME_CHARS.sub('_', file_name)}"



class _ProgressReporter:
    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self._last = -1

    def report(self, percent: int) -> None:
        percent = max(self._last, min(100, max(0, percent)))
        if percent == self._last:
            return
        self._last = percent
        if self._callback is not None:
            self._callback(percent)


class ChunkedUploadCoordinator:
    """Upload a binary either in one request or as ordered fixed-size chunks.

    Chunks other than the last may be sent with bounded concurrency; the last
    chunk is always sent alone after every other chunk succeeded, since its
    receipt carries the storage reference.
    """

    def __init__(
        self,
        transport: UploadTransport,
        *,
        chunk_size: int = CHUNK_SIZE_BYTES,
        direct_upload_threshold: int = DIRECT_UPLOAD_THRESHOLD_BYTES,
        max_retries: int = MAX_CHUNK_RETRIES,
        backoff_base_seconds: float = RETRY_BACKOFF_BASE_SECONDS,
        backoff_ceiling_seconds: float = RETRY_BACKOFF_CEILING_SECONDS,
        concurrency: int = 1,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.transport = transport
        self.chunk_size = chunk_size
        self.direct_upload_threshold = direct_upload_threshold
        self.max_retries = max_retries
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_ceiling_seconds = backoff_ceiling_seconds
        self.concurrency = concurrency

    def chunk_count(self, size_bytes: int) -> int:
        return max(1, -(-size_bytes // self.chunk_size))

    async def upload(
        self,
        payload: bytes,
        *,
        file_name: str,
        content_type: str = "application/octet-stream",
        on_progress: ProgressCallback | None = None,
    ) -> StoredAsset:
        progress = _ProgressReporter(on_progress)
        progress.report(0)
        if not payload:
            raise UploadError("Cannot upload an empty file.", code="empty_upload", file_name=file_name)

        if len(payload) < self.direct_upload_threshold:
            receipt = await self._with_retries(
                lambda: self.transport.upload_whole(file_name=file_name, payload=payload, content_type=content_type),
                file_name=file_name,
                label="whole file",
            )
        else:
            receipt = await self._upload_chunks(payload, file_name=file_name, content_type=content_type, progress=progress)

        if not receipt.path:
            raise UploadError(
                "Upload completed but the storage service returned no path.",
                code="missing_storage_path",
                file_name=file_name,
            )
        progress.report(100)
        logger.info("Upload completed", extra={"file_name": file_name, "path": receipt.path, "size_bytes": len(payload)})
        return StoredAsset(
            path=receipt.path,
            duration_seconds=receipt.duration_seconds,
            width=receipt.width,
            height=receipt.height,
        )

    async def _upload_chunks(
        self,
        payload: bytes,
        *,
        file_name: str,
        content_type: str,
        progress: _ProgressReporter,
    ) -> UploadReceipt:
        total = self.chunk_count(len(payload))
        session_id = session_identifier(file_name)
        completed = 0
        semaphore = asyncio.Semaphore(self.concurrency)

        async def send(index: int) -> UploadReceipt:
            nonlocal completed
            start = index * self.chunk_size
            chunk = payload[start : start + self.chunk_size]
            async with semaphore:
                receipt = await self._with_retries(
                    lambda: self.transport.upload_chunk(
                        session_id=session_id,
                        chunk_index=index,
                        total_chunks=total,
                        chunk=chunk,
                        file_name=file_name,
                        content_type=content_type,
                    ),
                    file_name=file_name,
                    label=f"chunk {index + 1}/{total}",
                )
            completed += 1
            # The final response closes the session, so 100 is reported only once a path is confirmed.
            progress.report(min(99, completed * 100 // total))
            return receipt

        leading = [asyncio.ensure_future(send(index)) for index in range(total - 1)]
        if leading:
            try:
                await asyncio.gather(*leading)
            except BaseException:
                for task in leading:
                    task.cancel()
                await asyncio.gather(*leading, return_exceptions=True)
                raise
        return await send(total - 1)

    async def _with_retries(
        self,
        operation: Callable[[], Awaitable[UploadReceipt]],
        *,
        file_name: str,
        label: str,
    ) -> UploadReceipt:
        def on_backoff(details: dict[str, Any]) -> None:
            logger.warning(
                "Upload attempt failed; retrying",
                extra={
                    "file_name": file_name,
                    "part": label,
                    "attempt": details["tries"],
                    "delay_seconds": details["wait"],
                },
            )

        def on_giveup(details: dict[str, Any]) -> None:
            if isinstance(details.get("exception"), UploadError):
                return
            logger.error(
                "Upload failed after retries",
                extra={"file_name": file_name, "part": label, "attempts": details["tries"]},
            )

        @backoff.on_exception(
            backoff.expo,
            Exception,
            max_tries=self.max_retries + 1,
            giveup=lambda error: isinstance(error, UploadError),
            factor=self.backoff_base_seconds,
            max_value=self.backoff_ceiling_seconds,
            jitter=None,
            on_backoff=on_backoff,
            on_giveup=on_giveup,
        )
        async def attempt() -> UploadReceipt:
            return await operation()

        try:
            return await attempt()
        except UploadError:
            raise
        except Exception as error:
            raise UploadError(f"Upload of {file_name} failed at {label}: {error}", file_name=file_name) from error
