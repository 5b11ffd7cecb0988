"""PMO webhook client that maps a ticket key to a Drive folder id."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

from .config import PmoConfig
from .models import PMOResolution

logger = logging.getLogger(__name__)


def _usable_folder_id(value: Any) -> str | None:
    """The webhook answers `undefined`, blanks or nothing while the folder is being created."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == "undefined":
        return None
    return text


class PMOFolderResolver:
    """Resolve (and trigger creation of) the PMO project folder for a ticket."""

    def __init__(
        self,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session or requests.Session()
        self.sleep = sleep

    def resolve_folder(self, ticket_key: str, config: PmoConfig) -> PMOResolution:
        """Return exactly one terminal outcome; never raises for webhook failures.

        ``created`` is only a hint: it is set when the id showed up after a
        "not ready" answer, which a slow webhook can also produce.
        """
        webhook_url = (config.webhook_url or "").strip()
        if not webhook_url:
            logger.error("PMO webhook URL is empty; cannot resolve %s", ticket_key)
            return PMOResolution.failed("PMO webhook URL not configured")

        max_retries = max(1, config.max_retries)
        logger.info(
            "Resolving PMO folder for %s (retries=%s, timeout=%sms)",
            ticket_key,
            max_retries,
            config.timeout_ms,
        )

        for attempt in range(1, max_retries + 1):
            last_attempt = attempt == max_retries
            logger.debug("PMO request attempt %s of %s", attempt, max_retries)

            started = time.monotonic()
            try:
                response = self.session.post(
                    webhook_url,
                    json={"text": ticket_key},
                    headers={"Content-Type": "application/json"},
                    timeout=config.timeout_seconds,
                )
            except requests.RequestException as exc:
                logger.warning(
                    "PMO webhook network error on attempt %s after %.0fms: %s",
                    attempt,
                    (time.monotonic() - started) * 1000,
                    exc,
                )
                if last_attempt:
                    return PMOResolution.failed(
                        f"PMO webhook network error after {max_retries} attempts: {exc}"
                    )
                self._wait(config)
                continue

            logger.debug(
                "PMO webhook answered %s in %.0fms", response.status_code, (time.monotonic() - started) * 1000
            )

            if response.status_code != 200:
                logger.error("PMO webhook HTTP error (%s): %s", response.status_code, response.text)
                return PMOResolution.failed(
                    f"PMO webhook HTTP error: {response.status_code} - {response.text}"
                )

            first = self._first_entry(response)
            if first is None:
                logger.error("PMO webhook returned an unexpected body: %s", response.text)
                return PMOResolution.failed(
                    f"PMO webhook returned invalid response format for ticket: {ticket_key}"
                )

            folder_id = _usable_folder_id(first.get("folderid"))
            if folder_id is not None:
                logger.info("PMO webhook returned folder %s for %s", folder_id, ticket_key)
                return PMOResolution.found(folder_id, created=attempt > 1)

            logger.info("PMO folder for %s not ready on attempt %s", ticket_key, attempt)
            if last_attempt:
                return PMOResolution.failed(
                    f"PMO webhook returned undefined folder ID after {max_retries} attempts "
                    f"for ticket: {ticket_key}"
                )
            self._wait(config)

        # The last attempt always returns above.
        raise AssertionError("unreachable")

    def _wait(self, config: PmoConfig) -> None:
        logger.debug("Waiting %sms before retrying", config.retry_delay_ms)
        self.sleep(config.retry_delay_ms / 1000)

    @staticmethod
    def _first_entry(response) -> dict | None:
        try:
            payload = response.json()
        except ValueError:
            return None
        if not isinstance(payload, list) or not payload:
            return None
        first = payload[0]
        return first if isinstance(first, dict) else None


def describe_pmo_error(error: str, ticket_key: str) -> str:
    """Turn a resolver error into guidance for the user."""
    base = f"Cannot save attachments for {ticket_key}"
    lowered = error.lower()

    if "timeout" in lowered or "network" in lowered:
        hints = [
            "Network issue: the PMO system is temporarily unreachable.",
            "Check your internet connection and try again in a few moments.",
            "If the problem persists, contact IT support.",
        ]
    elif "http error: 404" in lowered or "http error: 500" in lowered:
        hints = [
            "PMO system issue: the webhook is temporarily unavailable.",
            "Please try again in a few minutes.",
            "If the problem persists, contact the PMO team.",
        ]
    elif "http error: 403" in lowered or "unauthorized" in lowered:
        hints = [
            "Access issue: you may not have permission to create project folders.",
            "Verify the ticket number with your project manager.",
            "Contact the PMO team if you should have access.",
        ]
    elif "undefined folder id" in lowered:
        hints = [
            "The PMO system is still creating the project folder.",
            "Folder creation took longer than expected; retry in a moment.",
        ]
    elif "invalid response format" in lowered:
        hints = [
            "The PMO system returned an unexpected response.",
            "Please try again; if the error continues, contact IT support.",
        ]
    else:
        hints = [
            f"PMO integration error: {error}",
            "Please try again in a few moments.",
            "If the problem persists, contact IT or PMO support.",
        ]
    return "\n".join([base, *(f"- {hint}" for hint in hints)])
