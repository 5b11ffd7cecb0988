"""Google OAuth credentials for the Gmail and Drive APIs."""

from __future__ import annotations

import logging
from pathlib import Path

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.errors import HttpError

from .config import AppSettings

logger = logging.getLogger(__name__)

# What a built Gmail or Drive client can raise from execute().
SERVICE_ERRORS = (HttpError, OSError, httplib2.HttpLib2Error, GoogleAuthError)


def load_credentials(settings: AppSettings) -> Credentials:
    """Reuse the cached token, refresh it, or run the installed-app flow."""
    scopes = settings.google_scopes
    token_path: Path = settings.google_token_file
    creds = None

    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), scopes)

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        logger.info("Refreshing Google credentials")
        creds.refresh(Request())
    else:
        secrets_path: Path = settings.google_client_secrets
        if not secrets_path.exists():
            raise RuntimeError(
                f"Google client secrets not found at {secrets_path}; "
                "download an OAuth desktop client JSON and set GOOGLE_CLIENT_SECRETS."
            )
        flow = InstalledAppFlow.from_client_secrets_file(str(secrets_path), scopes)
        creds = flow.run_local_server(port=0)

    _persist_token(token_path, creds)
    return creds


def _persist_token(token_path: Path, creds: Credentials) -> None:
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
    logger.debug("Google token cached at %s", token_path)
