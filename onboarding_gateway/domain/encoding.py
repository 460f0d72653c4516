"""Attachment encoder - turns selected files into the data URLs the KYC payload carries"""

import base64
import logging
from typing import Dict, FrozenSet, List

from onboarding_gateway.config import settings
from onboarding_gateway.domain.draft_store import DraftStore
from onboarding_gateway.domain.exceptions import EncodingError
from onboarding_gateway.domain.models import Attachment, DraftPatch, FileHandle
from onboarding_gateway.infrastructure.observability.metrics import encoding_failure_counter

logger = logging.getLogger(__name__)


def to_data_url(content_type: str, data: bytes) -> str:
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{payload}"


class AttachmentEncoder:
    """
    Asynchronously reads file handles and encodes them.

    Results are cached per handle id: encoding the same handle twice yields
    the identical string and reads the file only once.
    """

    def __init__(self, max_bytes: int | None = None):
        self.max_bytes = max_bytes if max_bytes is not None else settings.attachment_max_bytes
        self._cache: Dict[str, str] = {}

    async def encode(self, handle: FileHandle, slot: str = "attachment") -> str:
        """
        Encode one file handle as a data URL.

        Raises:
            EncodingError: If the file cannot be read, is empty or is too large
        """
        cached = self._cache.get(handle.handle_id)
        if cached is not None:
            return cached

        try:
            data = await handle.read()
        except Exception as e:
            encoding_failure_counter.labels(slot=slot).inc()
            logger.warning(
                "Attachment read failed",
                extra={"slot": slot, "error_type": type(e).__name__},
            )
            raise EncodingError(slot, f"read failed ({type(e).__name__})") from e

        if not data:
            encoding_failure_counter.labels(slot=slot).inc()
            raise EncodingError(slot, "file is empty")

        if len(data) > self.max_bytes:
            encoding_failure_counter.labels(slot=slot).inc()
            raise EncodingError(slot, f"file exceeds {self.max_bytes} bytes")

        encoded = to_data_url(handle.content_type, data)
        self._cache[handle.handle_id] = encoded
        return encoded

    @property
    def cached_handles(self) -> FrozenSet[str]:
        return frozenset(self._cache)

    def forget(self, handle_id: str) -> None:
        self._cache.pop(handle_id, None)

    def clear(self) -> None:
        """Drop every cached encoding; called once the draft holding them is gone"""
        self._cache.clear()

    async def encode_slot(self, store: DraftStore, slot: str) -> Attachment:
        """
        Encode the handle currently held by a slot and store the result.

        The encoded value is stored only if the slot still holds the same
        handle once the read finishes; a replaced handle's result is dropped.
        """
        attachment = store.read().attachments.get(slot)
        if attachment is None or attachment.handle is None:
            raise EncodingError(slot, "no file selected")
        if attachment.encoded is not None:
            return attachment

        handle = attachment.handle
        encoded = await self.encode(handle, slot=slot)

        current = store.read().attachments.get(slot)
        if current is None or current.handle is None or current.handle.handle_id != handle.handle_id:
            logger.info("Discarding encoding for replaced attachment", extra={"slot": slot})
            self.forget(handle.handle_id)
            return current if current is not None else Attachment()

        encoded_attachment = Attachment(handle=handle, encoded=encoded)
        store.update(DraftPatch(attachments={slot: encoded_attachment}))
        return encoded_attachment

    async def encode_pending(self, store: DraftStore) -> List[str]:
        """Encode every slot holding a handle without an encoded value; returns the slots encoded"""
        pending = [slot for slot, attachment in store.read().attachments.items() if attachment.needs_encoding]
        for slot in pending:
            await self.encode_slot(store, slot)
        return pending
