"""Remember which attachments of a thread the user ticked."""

from __future__ import annotations

import json
import logging
from typing import Iterable, Mapping, Optional

from .models import AttachmentRecord
from .property_store import PropertyStore

logger = logging.getLogger(__name__)

SELECTION_PREFIX = "ATTACHMENT_SELECTIONS_"


class AttachmentSelectionStore:
    """Per-thread map of attachment key -> selected flag.

    Keys follow the thread's current attachment order, so a reply that
    shifts indices leaves older keys unused rather than misapplied.
    """

    def __init__(self, store: PropertyStore) -> None:
        self.store = store

    @staticmethod
    def _key(thread_id: str) -> str:
        return f"{SELECTION_PREFIX}{thread_id}"

    def store_selections(self, thread_id: str, selections: Mapping[str, bool]) -> None:
        """Replace whatever was stored for the thread."""
        if not thread_id:
            logger.debug("No thread id provided, skipping selection storage")
            return
        payload = {key: bool(value) for key, value in selections.items()}
        self.store.set(self._key(thread_id), json.dumps(payload))
        logger.debug("Stored %s selection flags for thread %s", len(payload), thread_id)

    def load_selections(self, thread_id: str) -> Optional[dict[str, bool]]:
        """Return the stored map, or None if the thread never had one."""
        if not thread_id:
            return None
        raw = self.store.get(self._key(thread_id))
        if raw is None:
            logger.debug("No stored selections for thread %s", thread_id)
            return None
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            logger.error("Stored selections for thread %s are unreadable: %s", thread_id, exc)
            return None
        if not isinstance(payload, dict):
            logger.error("Stored selections for thread %s are not an object", thread_id)
            return None
        return {str(key): bool(value) for key, value in payload.items()}

    def clear(self, thread_id: str) -> None:
        if thread_id:
            self.store.delete(self._key(thread_id))

    def thread_ids(self) -> list[str]:
        return [key[len(SELECTION_PREFIX):] for key in self.store.keys(SELECTION_PREFIX)]


def capture_selections(
    attachments: Iterable[AttachmentRecord], selected_indices: Iterable[int]
) -> dict[str, bool]:
    """Build the full map for the current checkbox state."""
    chosen = set(selected_indices)
    return {record.selection_key: record.source_index in chosen for record in attachments}


def restore_selections(
    attachments: Iterable[AttachmentRecord], stored: Optional[Mapping[str, bool]]
) -> list[tuple[AttachmentRecord, bool]]:
    """Pair each attachment with its remembered flag; unknown means unselected."""
    stored = stored or {}
    return [(record, bool(stored.get(record.selection_key, False))) for record in attachments]
