"""Write attachments into a Drive folder without piling up duplicates."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from .errors import ExternalServiceError
from .models import AttachmentRecord, Failed, FolderWriteResult, Saved, SkippedDuplicate
from .utils import timestamped_name

logger = logging.getLogger(__name__)


def write_attachments(
    folder,
    attachments: Iterable[AttachmentRecord],
    timestamp: datetime,
    load_content: Optional[Callable[[AttachmentRecord], AttachmentRecord]] = None,
) -> FolderWriteResult:
    """Save each attachment in order.

    An existing file with the same name and byte size counts as the same
    file and is skipped. Same name with another size is saved under a
    ``_YYYYMMDD_HHMMSS`` suffixed name built from ``timestamp``.
    ``load_content`` fetches the bytes of one record just before it is
    uploaded. A failed download or upload is recorded and the rest continue.
    """
    result = FolderWriteResult()

    for record in attachments:
        try:
            existing = next(iter(folder.files_by_name(record.name)), None)

            if existing is not None and existing.size == record.size:
                logger.info("Skipping duplicate file %s (%s bytes)", record.name, record.size)
                result.outcomes.append(SkippedDuplicate(record.name))
                continue

            payload = load_content(record) if load_content else record

            if existing is None:
                created = folder.create_file(payload)
                logger.info("Saved new file %s", created.name)
                result.outcomes.append(Saved(created.name))
                continue

            new_name = timestamped_name(record.name, timestamp)
            logger.info(
                "File %s exists with size %s (new %s); saving as %s",
                record.name,
                existing.size,
                record.size,
                new_name,
            )
            created = folder.create_file(payload, name=new_name)
            result.outcomes.append(Saved(created.name))
        except ExternalServiceError as exc:
            logger.error("Error saving attachment %s: %s", record.name, exc)
            result.outcomes.append(Failed(record.name, str(exc)))

    logger.info(
        "Write complete: saved=%s skipped=%s failed=%s",
        result.saved_count,
        result.skipped_count,
        len(result.failed_names),
    )
    return result
