"""Gmail helper focused on thread attachment retrieval."""

from __future__ import annotations

import base64
import logging
from dataclasses import replace
from typing import Iterator

from googleapiclient.discovery import build

from .errors import ExternalServiceError
from .google_auth import SERVICE_ERRORS
from .models import AttachmentRecord

logger = logging.getLogger(__name__)


def _decode(data: str) -> bytes:
    # Gmail strips base64 padding.
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


class GmailClient:
    """Thin wrapper over the Gmail v1 API yielding thread attachments."""

    USER_ID = "me"

    def __init__(self, service) -> None:
        self.service = service

    @classmethod
    def from_credentials(cls, credentials) -> "GmailClient":
        return cls(build("gmail", "v1", credentials=credentials, cache_discovery=False))

    def get_thread_attachments(self, thread_id: str) -> list[AttachmentRecord]:
        """All file attachments of a thread, message order then MIME part order.

        Content is left empty; fetch it with `with_content` for the ones
        that are actually saved.
        """
        try:
            thread = (
                self.service.users()
                .threads()
                .get(userId=self.USER_ID, id=thread_id, format="full")
                .execute()
            )
        except SERVICE_ERRORS as exc:
            raise ExternalServiceError(f"Could not load thread {thread_id}: {exc}") from exc

        attachments: list[AttachmentRecord] = []
        for message in thread.get("messages", []):
            for part in self._iter_parts(message.get("payload") or {}):
                body = part.get("body") or {}
                attachments.append(
                    AttachmentRecord(
                        name=part["filename"],
                        size=int(body.get("size") or 0),
                        source_index=len(attachments),
                        content=_decode(body["data"]) if body.get("data") else b"",
                        mime_type=part.get("mimeType") or "application/octet-stream",
                        message_id=message.get("id", ""),
                        attachment_id=body.get("attachmentId"),
                    )
                )
        logger.debug("Thread %s has %s attachments", thread_id, len(attachments))
        return attachments

    def download_attachment(self, message_id: str, attachment_id: str) -> bytes:
        """Download attachment bytes."""
        try:
            raw = (
                self.service.users()
                .messages()
                .attachments()
                .get(userId=self.USER_ID, messageId=message_id, id=attachment_id)
                .execute()
            )
        except SERVICE_ERRORS as exc:
            raise ExternalServiceError(f"Could not download attachment {attachment_id}: {exc}") from exc
        return _decode(raw.get("data", ""))

    def with_content(self, record: AttachmentRecord) -> AttachmentRecord:
        if record.content or not record.attachment_id:
            return record
        return replace(record, content=self.download_attachment(record.message_id, record.attachment_id))

    @classmethod
    def _iter_parts(cls, part: dict) -> Iterator[dict]:
        if part.get("filename"):
            yield part
        for child in part.get("parts") or []:
            yield from cls._iter_parts(child)
