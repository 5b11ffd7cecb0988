"""Entry point that saves Gmail thread attachments into PMO Drive folders."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from dotenv import load_dotenv

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pmo_saver.config import AppSettings
from pmo_saver.drive_client import DriveFolderStore
from pmo_saver.errors import ConfigurationError, ExternalServiceError
from pmo_saver.gmail_client import GmailClient
from pmo_saver.google_auth import load_credentials
from pmo_saver.jira_client import JiraClient, format_ticket_display
from pmo_saver.pmo_client import PMOFolderResolver
from pmo_saver.property_store import PropertyStore
from pmo_saver.save_flow import AttachmentSaver, SaveRequest
from pmo_saver.selection_store import AttachmentSelectionStore, capture_selections, restore_selections
from pmo_saver.settings_store import (
    SettingsForm,
    build_user_settings,
    load_user_settings,
    save_user_settings,
)
from pmo_saver.utils import format_file_size, mask_token

load_dotenv()

logger = logging.getLogger("save_attachments")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Save Gmail attachments into PMO project folders.")
    commands = parser.add_subparsers(dest="command", required=True)

    configure = commands.add_parser("configure", help="Validate and store Jira/PMO settings")
    configure.add_argument("--jira-url", default="")
    configure.add_argument("--jira-token", default="", help="Pass the masked value to keep the stored token")
    configure.add_argument("--jql", default="", help="Custom JQL for the ticket list")
    configure.add_argument("--webhook-url", default="")
    configure.add_argument("--timeout-ms", default=None)
    configure.add_argument("--retries", default=None)

    commands.add_parser("show-settings", help="Print the stored settings with the token masked")
    commands.add_parser("test-jira", help="Check the Jira URL and token")
    commands.add_parser("test-pmo", help="Resolve a test ticket through the PMO webhook")

    tickets = commands.add_parser("tickets", help="List tickets matching the configured JQL")
    tickets.add_argument("--jql", help="Override the stored JQL")

    attachments = commands.add_parser("attachments", help="List a thread's attachments and remembered ticks")
    attachments.add_argument("--thread", required=True)

    select = commands.add_parser("select", help="Remember which attachments to save")
    select.add_argument("--thread", required=True)
    select.add_argument("--index", type=int, nargs="*", default=[], help="Attachment indices to tick")

    forget = commands.add_parser("forget", help="Drop remembered attachment selections")
    which = forget.add_mutually_exclusive_group(required=True)
    which.add_argument("--thread", help="Forget one thread")
    which.add_argument("--all", action="store_true", help="Forget every remembered thread")

    save = commands.add_parser("save", help="Save ticked attachments to the ticket's PMO folder")
    save.add_argument("--thread", required=True)
    ticket = save.add_mutually_exclusive_group(required=True)
    ticket.add_argument("--ticket", help="Ticket key picked from the list")
    ticket.add_argument("--manual", help="Ticket number only; the project prefix is added")
    ticket.add_argument("--ticket-key", help="Full ticket key typed by hand")
    save.add_argument(
        "--index",
        type=int,
        nargs="*",
        default=None,
        help="Attachment indices to save; omit to use the remembered selection",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def run_configure(args: argparse.Namespace, settings: AppSettings, store: PropertyStore) -> int:
    existing = load_user_settings(store, settings)
    form = SettingsForm(
        jira_url=args.jira_url,
        jira_token=args.jira_token,
        custom_jql=args.jql,
        pmo_webhook_url=args.webhook_url,
        pmo_timeout_ms=args.timeout_ms,
        pmo_retry_attempts=args.retries,
    )
    try:
        user_settings = build_user_settings(form, existing, settings)
    except ConfigurationError as exc:
        print(f"Settings not saved: {exc}")
        return 2
    save_user_settings(store, user_settings)
    webhook_kind = "Default" if user_settings.pmo_webhook_url == settings.default_webhook_url else "Custom"
    print("Settings saved")
    print(f"- Jira: {user_settings.jira_url}")
    print(f"- PMO webhook: {webhook_kind}")
    print(f"- PMO timeout: {user_settings.pmo_timeout_ms}ms")
    print(f"- PMO retries: {user_settings.pmo_retry_attempts}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = AppSettings()
    configure_logging(settings.log_level)

    store = PropertyStore(settings.store_db, settings.user)
    selections = AttachmentSelectionStore(store)

    if args.command == "configure":
        return run_configure(args, settings, store)

    if args.command == "forget":
        thread_ids = selections.thread_ids() if args.all else [args.thread]
        for thread_id in thread_ids:
            selections.clear(thread_id)
        print(f"Forgot selections for {len(thread_ids)} thread(s)")
        return 0

    user_settings = load_user_settings(store, settings)

    if args.command == "show-settings":
        print(f"Jira URL: {user_settings.jira_url or 'NOT SET'}")
        print(f"Jira token: {mask_token(user_settings.jira_token) if user_settings.jira_token else 'NOT SET'}")
        print(f"JQL: {user_settings.jql}")
        print(f"PMO webhook: {user_settings.pmo_webhook_url or 'NOT SET'}")
        print(f"PMO timeout: {user_settings.pmo_timeout_ms}ms")
        print(f"PMO retries: {user_settings.pmo_retry_attempts}")
        return 0

    if args.command in ("test-jira", "tickets"):
        if not user_settings.has_jira_credentials:
            print("Please save your Jira settings first")
            return 2
        jira = JiraClient(user_settings)
        if args.command == "test-jira":
            check = jira.test_connection()
            if check.success:
                print(f"Connection successful! Logged in as: {check.detail}")
                return 0
            print(f"Connection failed: {check.error}")
            return 1
        result = jira.search_issues(args.jql)
        for issue in result.issues:
            print(format_ticket_display(issue))
        print(f"{len(result.issues)} of {result.total} tickets")
        return 0

    credentials = load_credentials(settings)
    gmail = GmailClient.from_credentials(credentials)
    drive = DriveFolderStore.from_credentials(credentials)
    saver = AttachmentSaver(
        gmail=gmail,
        drive=drive,
        resolver=PMOFolderResolver(),
        selections=selections,
        pmo_config=user_settings.pmo_config(settings.retry_delay_ms),
        ticket_project=settings.ticket_project,
        timezone=settings.timezone,
    )

    if args.command == "test-pmo":
        check = saver.test_pmo_connection()
        print(check.detail if check.success else check.error)
        return 0 if check.success else 1

    if args.command in ("attachments", "select"):
        try:
            thread_attachments = gmail.get_thread_attachments(args.thread)
        except ExternalServiceError as exc:
            print(f"Could not read the email thread: {exc}")
            return 1

        if args.command == "select":
            selections.store_selections(args.thread, capture_selections(thread_attachments, args.index))
            print(f"Remembered {len(args.index)} selected attachment(s)")
            return 0

        remembered = restore_selections(thread_attachments, selections.load_selections(args.thread))
        for record, ticked in remembered:
            mark = "x" if ticked else " "
            print(f"[{mark}] {record.source_index}: {record.name} ({format_file_size(record.size)})")
        return 0

    outcome = saver.save(
        SaveRequest(
            thread_id=args.thread,
            selected_indices=args.index,
            selected_ticket=args.ticket,
            manual_number=args.manual,
            full_ticket=args.ticket_key,
        )
    )
    print(outcome.message)
    logger.info("Save finished: success=%s ticket=%s", outcome.success, outcome.ticket_key)
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
