from __future__ import annotations

from datetime import datetime
from typing import Dict, Sequence

from preview_cache.data.models import CachedAttachment

from .base import AttachmentStore


class InMemoryAttachmentStore(AttachmentStore[Dict[str, CachedAttachment]]):
    """Process-local store for tests and throwaway sessions; nothing survives a restart."""

    def __init__(self) -> None:
        super().__init__()
        self._records: Dict[str, CachedAttachment] = {}

    async def _open(self) -> Dict[str, CachedAttachment]:
        return self._records

    async def get(self, attachment_id: str) -> CachedAttachment | None:
        records = await self.open()
        return records.get(attachment_id)

    async def put(self, attachment: CachedAttachment) -> None:
        records = await self.open()
        records[attachment.id] = attachment

    async def touch(self, attachment_id: str, accessed_at: datetime) -> None:
        records = await self.open()
        current = records.get(attachment_id)
        if current is not None:
            records[attachment_id] = current.model_copy(
                update={"last_accessed": accessed_at},
            )

    async def delete(self, attachment_id: str) -> bool:
        records = await self.open()
        return records.pop(attachment_id, None) is not None

    async def delete_by_email(self, email_id: str) -> int:
        records = await self.open()
        doomed = [key for key, record in records.items() if record.email_id == email_id]
        for key in doomed:
            del records[key]
        return len(doomed)

    async def iterate(self) -> Sequence[CachedAttachment]:
        records = await self.open()
        return list(records.values())

    async def clear(self) -> None:
        records = await self.open()
        records.clear()


__all__ = ["InMemoryAttachmentStore"]
