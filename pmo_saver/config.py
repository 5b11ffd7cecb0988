"""Configuration for the Gmail→PMO Drive attachment saver."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early so BaseSettings can pick values up seamlessly.
load_dotenv()

DEFAULT_PMO_TIMEOUT_MS = 10000
DEFAULT_PMO_RETRY_ATTEMPTS = 2
PMO_TIMEOUT_RANGE_MS = (5000, 60000)
PMO_RETRY_RANGE = (1, 5)

DEFAULT_JQL = (
    'project = CXPRODELIVERY AND issuetype in (Project, "Project (Standard Solution)") '
    'AND status in (HYPERCARE, "Order received", "Test system available", '
    '"Project go-live/productive start", "System Design Assigned", "Implementation Assigned", '
    '"Implementation Order Assigned", "Test System Available (Implementation Order)", '
    '"Handover Check Needed", "HYPERCARE (WITH CHECK)", "LIVE SYSTEM AVAILABLE", '
    '"System Design Order Received", "System Design Started", "Requirements Clarified", '
    '"Implementation Started") AND "Technical Project Manager" in (currentUser())'
)


def _split_list(value: str | Sequence[str] | None) -> list[str]:
    """Turn delimiter-separated env strings into cleaned lists."""
    if value is None:
        return []
    if isinstance(value, str):
        items = re.split(r"[;,]", value)
    else:
        items = list(value)
    return [item.strip() for item in items if item.strip()]


def is_absolute_http_url(value: str | None) -> bool:
    """True for well-formed http(s) URLs with a host."""
    if not value:
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class AppSettings(BaseSettings):
    """Process configuration derived from environment variables."""

    store_db: Path = Field(Path("data/pmo_saver.db"), alias="PMO_STORE_DB")
    user: str = Field("me", alias="PMO_USER")

    google_client_secrets: Path = Field(
        Path("data/google_client_secret.json"), alias="GOOGLE_CLIENT_SECRETS"
    )
    google_token_file: Path = Field(Path("data/google_token.json"), alias="GOOGLE_TOKEN_FILE")
    google_scopes_raw: str = Field(
        "https://www.googleapis.com/auth/gmail.readonly;https://www.googleapis.com/auth/drive",
        alias="GOOGLE_SCOPES",
    )

    default_webhook_url: str = Field("", alias="PMO_DEFAULT_WEBHOOK_URL")
    retry_delay_ms: int = Field(1000, alias="PMO_RETRY_DELAY_MS")
    ticket_project: str = Field("CXPRODELIVERY", alias="PMO_TICKET_PROJECT")
    timezone: str = Field("UTC", alias="PMO_TIMEZONE")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_webhook_url", "ticket_project", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("retry_delay_ms")
    @classmethod
    def _non_negative_delay(cls, value: int) -> int:
        if value < 0:
            raise ValueError("PMO_RETRY_DELAY_MS must not be negative.")
        return value

    @property
    def google_scopes(self) -> list[str]:
        return _split_list(self.google_scopes_raw)


class UserSettings(BaseModel):
    """Per-user settings persisted as the JIRA_SETTINGS blob."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    jira_url: str = Field("", alias="jiraUrl")
    jira_token: str = Field("", alias="jiraToken")
    custom_jql: str = Field("", alias="customJql")
    pmo_webhook_url: str = Field("", alias="pmoWebhookUrl")
    pmo_timeout_ms: int = Field(
        DEFAULT_PMO_TIMEOUT_MS,
        alias="pmoTimeoutMs",
        validation_alias=AliasChoices("pmoTimeoutMs", "pmoTimeout", "pmo_timeout_ms"),
    )
    pmo_retry_attempts: int = Field(DEFAULT_PMO_RETRY_ATTEMPTS, alias="pmoRetryAttempts")
    saved_at: str | None = Field(None, alias="savedAt")

    @field_validator("jira_url", "jira_token", "custom_jql", "pmo_webhook_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("pmo_timeout_ms", "pmo_retry_attempts", mode="before")
    @classmethod
    def _falsy_to_default(cls, value, info):
        # Older blobs stored 0 or "" when the field was left blank.
        if value in (None, "", 0):
            if info.field_name == "pmo_timeout_ms":
                return DEFAULT_PMO_TIMEOUT_MS
            return DEFAULT_PMO_RETRY_ATTEMPTS
        return value

    @property
    def jql(self) -> str:
        return self.custom_jql or DEFAULT_JQL

    @property
    def has_jira_credentials(self) -> bool:
        return bool(self.jira_url and self.jira_token)

    def pmo_config(self, retry_delay_ms: int = 1000) -> "PmoConfig":
        """Snapshot the PMO settings for a single resolver run."""
        return PmoConfig(
            webhook_url=self.pmo_webhook_url,
            timeout_ms=self.pmo_timeout_ms,
            max_retries=self.pmo_retry_attempts,
            retry_delay_ms=retry_delay_ms,
        )

    def to_blob(self) -> dict:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class PmoConfig:
    """Explicit resolver configuration, loaded once per invocation."""

    webhook_url: str
    timeout_ms: int = DEFAULT_PMO_TIMEOUT_MS
    max_retries: int = DEFAULT_PMO_RETRY_ATTEMPTS
    retry_delay_ms: int = 1000

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000
