"""Upload transport writing release assets straight to MinIO object storage."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from tuneflow.application.ports import UploadReceipt
from tuneflow.domain.models import new_identifier
from tuneflow.storage import StorageWriteError, store_release_asset

logger = logging.getLogger(__name__)

Store = Callable[..., str]


@dataclass(slots=True)
class MinioUploadTransport:
    """Buffers chunks per session and writes one object when the last chunk arrives."""

    prefix: str = "releases"
    store: Store = store_release_asset
    _sessions: dict[str, dict[int, bytes]] = field(default_factory=dict)

    async def upload_whole(self, *, file_name: str, payload: bytes, content_type: str) -> UploadReceipt:
        return await self._write(file_name, payload, content_type)

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
        parts = self._sessions.setdefault(session_id, {})
        parts[chunk_index] = chunk
        if chunk_index != total_chunks - 1:
            return UploadReceipt()

        missing = [index for index in range(total_chunks) if index not in parts]
        if missing:
            self._sessions.pop(session_id)
            raise StorageWriteError(f"Upload session {session_id} is missing chunks {missing}.")
        payload = b"".join(parts[index] for index in range(total_chunks))
        # A failed write keeps the buffered chunks so the final chunk can be retried.
        receipt = await self._write(file_name, payload, content_type)
        self._sessions.pop(session_id, None)
        return receipt

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def _write(self, file_name: str, payload: bytes, content_type: str) -> UploadReceipt:
        object_name = f"{self.prefix}/{new_identifier()}-{file_name}"
        url = await asyncio.to_thread(self.store, object_name=object_name, payload=payload, content_type=content_type)
        logger.info("Stored release asset", extra={"object_name": object_name, "size_bytes": len(payload)})
        return UploadReceipt(path=url)
