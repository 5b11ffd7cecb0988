"""Load, validate and persist the per-user settings blob."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional

from pydantic import ValidationError

from .config import (
    DEFAULT_JQL,
    DEFAULT_PMO_RETRY_ATTEMPTS,
    DEFAULT_PMO_TIMEOUT_MS,
    PMO_RETRY_RANGE,
    PMO_TIMEOUT_RANGE_MS,
    AppSettings,
    UserSettings,
    is_absolute_http_url,
)
from .errors import ConfigurationError
from .property_store import PropertyStore
from .utils import mask_token

logger = logging.getLogger(__name__)

SETTINGS_KEY = "JIRA_SETTINGS"


@dataclass
class SettingsForm:
    """Raw values as typed on the settings screen."""

    jira_url: str = ""
    jira_token: str = ""
    custom_jql: str = ""
    pmo_webhook_url: str = ""
    pmo_timeout_ms: Optional[str | int] = None
    pmo_retry_attempts: Optional[str | int] = None


def _with_defaults(settings: UserSettings, app_settings: AppSettings) -> UserSettings:
    if not settings.pmo_webhook_url and app_settings.default_webhook_url:
        logger.info("Adding default PMO webhook URL for existing user")
        settings = settings.model_copy(update={"pmo_webhook_url": app_settings.default_webhook_url})
    return settings


def load_user_settings(store: PropertyStore, app_settings: AppSettings) -> UserSettings:
    """Return stored settings, or defaults when nothing usable is stored."""
    raw = store.get(SETTINGS_KEY)
    if not raw:
        logger.info("No stored settings found; using defaults")
        return _with_defaults(UserSettings(), app_settings)

    try:
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("Settings payload must be a JSON object.")
        settings = UserSettings.model_validate(payload)
    except (ValueError, ValidationError) as exc:
        logger.error("Stored settings are unreadable, falling back to defaults: %s", exc)
        return _with_defaults(UserSettings(), app_settings)

    logger.debug(
        "Loaded settings: jira_url=%s token=%s pmo_timeout_ms=%s pmo_retry_attempts=%s",
        settings.jira_url or "NOT SET",
        mask_token(settings.jira_token) if settings.jira_token else "NOT SET",
        settings.pmo_timeout_ms,
        settings.pmo_retry_attempts,
    )
    return _with_defaults(settings, app_settings)


def save_user_settings(store: PropertyStore, settings: UserSettings) -> None:
    store.set(SETTINGS_KEY, json.dumps(settings.to_blob()))
    logger.info("Settings saved for user %s", store.user)


def _parse_int(value: Optional[str | int], default: int, label: str) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{label} must be a whole number") from exc
    return parsed or default


def build_user_settings(
    form: SettingsForm,
    existing: UserSettings,
    app_settings: AppSettings,
    saved_at: datetime | None = None,
) -> UserSettings:
    """Validate a settings form into a complete settings object.

    A token containing ``****`` is the masked value we displayed, so the
    existing token is kept. Raises ConfigurationError with a message fit
    for the user when any field is unacceptable.
    """
    jira_url = (form.jira_url or "").strip()
    token = (form.jira_token or "").strip()
    if existing.jira_token and token and "****" in token:
        token = existing.jira_token

    if not jira_url or not token:
        raise ConfigurationError("Please provide both Jira URL and API token")

    jira_url = jira_url.removesuffix("/")
    if not jira_url.startswith("http"):
        raise ConfigurationError("Please provide a valid URL starting with http")

    webhook_url = (form.pmo_webhook_url or app_settings.default_webhook_url or "").strip()
    if not webhook_url.startswith("http"):
        raise ConfigurationError(
            "PMO webhook URL is required and must start with http:// or https://"
        )
    if not is_absolute_http_url(webhook_url):
        raise ConfigurationError("PMO webhook URL format is invalid. Please provide a valid URL.")

    timeout_ms = _parse_int(form.pmo_timeout_ms, DEFAULT_PMO_TIMEOUT_MS, "PMO timeout")
    low, high = PMO_TIMEOUT_RANGE_MS
    if not low <= timeout_ms <= high:
        raise ConfigurationError(
            f"PMO timeout must be between {low} and {high} milliseconds ({low // 1000}-{high // 1000} seconds)"
        )

    retries = _parse_int(form.pmo_retry_attempts, DEFAULT_PMO_RETRY_ATTEMPTS, "PMO retry attempts")
    low, high = PMO_RETRY_RANGE
    if not low <= retries <= high:
        raise ConfigurationError(f"PMO retry attempts must be between {low} and {high}")

    return UserSettings(
        jira_url=jira_url,
        jira_token=token,
        custom_jql=(form.custom_jql or "").strip() or DEFAULT_JQL,
        pmo_webhook_url=webhook_url.removesuffix("/"),
        pmo_timeout_ms=timeout_ms,
        pmo_retry_attempts=retries,
        saved_at=(saved_at or datetime.now(tz=UTC)).isoformat(),
    )
