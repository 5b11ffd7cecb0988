"""Save the ticked attachments of a thread into the ticket's PMO folder."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Callable, Optional

from .config import PmoConfig
from .drive_client import DriveFolderStore, open_folder
from .errors import ExternalServiceError
from .folder_writer import write_attachments
from .gmail_client import GmailClient
from .models import ConnectionCheck, FolderWriteResult, PMOResolution
from .pmo_client import PMOFolderResolver, describe_pmo_error
from .selection_store import AttachmentSelectionStore, capture_selections, restore_selections
from .utils import epoch_millis, now_in

logger = logging.getLogger(__name__)

MANUAL_TICKET = "manual"


def choose_ticket(
    selected: Optional[str],
    manual_number: Optional[str],
    full_ticket: Optional[str],
    project: str,
) -> Optional[str]:
    """A picked ticket wins over a manual number, which wins over a typed key."""
    if selected and selected != MANUAL_TICKET:
        return selected.strip()
    if manual_number and manual_number.strip():
        return f"{project}-{manual_number.strip()}"
    if full_ticket and full_ticket.strip():
        return full_ticket.strip()
    return None


@dataclass
class SaveRequest:
    thread_id: str
    # None re-uses the selections remembered for the thread.
    selected_indices: Optional[list[int]] = None
    selected_ticket: Optional[str] = None
    manual_number: Optional[str] = None
    full_ticket: Optional[str] = None


@dataclass
class SaveOutcome:
    success: bool
    message: str
    ticket_key: Optional[str] = None
    resolution: Optional[PMOResolution] = None
    folder_name: Optional[str] = None
    write_result: Optional[FolderWriteResult] = None


def summarize_save(
    ticket_key: str,
    folder_name: str,
    created: bool,
    processed: int,
    result: FolderWriteResult,
) -> str:
    if created:
        lines = [f"New PMO folder created: {folder_name}"]
    else:
        lines = [f"Saved to existing PMO folder: {folder_name}"]
    lines.append(f"Files processed: {processed}")
    lines.append(f"Files saved: {result.saved_count}")
    if result.skipped_count:
        lines.append(f"Duplicates skipped: {result.skipped_count}")
    if result.failed_names:
        lines.append(f"Failed: {', '.join(result.failed_names)}")
    lines.append(f"Project: {ticket_key}")
    rate = round(result.saved_count / processed * 100) if processed else 0
    lines.append(f"Success rate: {rate}%")

    saved = result.saved_names
    if 0 < len(saved) <= 3:
        lines.append("Saved files:")
        lines.extend(f"- {name}" for name in saved)
    elif len(saved) > 3:
        lines.append(f"Recent files: {', '.join(saved[:2])} and {len(saved) - 2} more")
    return "\n".join(["Attachment save complete!", *lines])


class AttachmentSaver:
    """Run one save from thread to PMO folder."""

    def __init__(
        self,
        gmail: GmailClient,
        drive: DriveFolderStore,
        resolver: PMOFolderResolver,
        selections: AttachmentSelectionStore,
        pmo_config: PmoConfig,
        ticket_project: str = "CXPRODELIVERY",
        clock: Callable[[], datetime] | None = None,
        timezone: str = "UTC",
    ) -> None:
        self.gmail = gmail
        self.drive = drive
        self.resolver = resolver
        self.selections = selections
        self.pmo_config = pmo_config
        self.ticket_project = ticket_project
        self.clock = clock or partial(now_in, timezone)

    def save(self, request: SaveRequest) -> SaveOutcome:
        ticket_key = choose_ticket(
            request.selected_ticket, request.manual_number, request.full_ticket, self.ticket_project
        )
        if not ticket_key:
            return SaveOutcome(False, "Please select a ticket or enter a manual ticket number")
        if not request.thread_id:
            return SaveOutcome(False, "Please open an email to save attachments", ticket_key)

        try:
            attachments = self.gmail.get_thread_attachments(request.thread_id)
        except ExternalServiceError as exc:
            logger.error("Could not read thread %s: %s", request.thread_id, exc)
            return SaveOutcome(False, f"Could not read the email thread: {exc}", ticket_key)

        if not attachments:
            return SaveOutcome(False, "No attachments found in this thread", ticket_key)

        indices = request.selected_indices
        if indices is None:
            remembered = restore_selections(attachments, self.selections.load_selections(request.thread_id))
            indices = [record.source_index for record, ticked in remembered if ticked]

        selection = capture_selections(attachments, indices)
        self.selections.store_selections(request.thread_id, selection)
        chosen = [record for record in attachments if selection[record.selection_key]]
        logger.info("Selected %s of %s attachments for %s", len(chosen), len(attachments), ticket_key)
        if not chosen:
            return SaveOutcome(False, "Please select at least one attachment", ticket_key)

        resolution = self.resolver.resolve_folder(ticket_key, self.pmo_config)
        if not resolution.success:
            logger.error("PMO lookup failed for %s: %s", ticket_key, resolution.error)
            return SaveOutcome(
                False, describe_pmo_error(resolution.error or "", ticket_key), ticket_key, resolution
            )

        access = open_folder(self.drive, resolution.folder_id)
        if not access.success:
            message = "\n".join(
                [
                    f"Cannot access PMO project folder for {ticket_key}",
                    f"Folder ID: {resolution.folder_id}",
                    f"Issue: {access.error}",
                    "The PMO folder was found but cannot be accessed; check your folder permissions.",
                ]
            )
            return SaveOutcome(False, message, ticket_key, resolution)

        result = write_attachments(
            access.folder, chosen, timestamp=self.clock(), load_content=self.gmail.with_content
        )
        message = summarize_save(ticket_key, access.name, resolution.created, len(chosen), result)
        return SaveOutcome(True, message, ticket_key, resolution, access.name, result)

    def test_pmo_connection(self) -> ConnectionCheck:
        """Resolve a throwaway test ticket and prove the folder is reachable."""
        test_ticket = f"{self.ticket_project}-TEST-{epoch_millis()}"
        logger.info("Testing PMO connection with %s", test_ticket)

        resolution = self.resolver.resolve_folder(test_ticket, self.pmo_config)
        if not resolution.success:
            return ConnectionCheck(
                success=False,
                error="\n".join(
                    [
                        "PMO connection test failed",
                        f"Webhook URL: {self.pmo_config.webhook_url}",
                        f"Test ticket: {test_ticket}",
                        f"Error: {resolution.error}",
                    ]
                ),
            )

        access = open_folder(self.drive, resolution.folder_id)
        if not access.success:
            return ConnectionCheck(
                success=False,
                error=f"PMO webhook responded but folder access failed: {access.error}",
            )

        status = "New folder created" if resolution.created else "Existing folder found"
        return ConnectionCheck(
            success=True,
            detail="\n".join(
                [
                    "PMO connection test successful",
                    f"Folder ID: {resolution.folder_id}",
                    f"Folder name: {access.name}",
                    f"Status: {status}",
                ]
            ),
        )
