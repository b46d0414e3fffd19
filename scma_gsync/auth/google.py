"""Google credential acquisition."""

import logging
import os
from enum import Enum
from typing import Optional

import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from scma_gsync.errors import AuthError

logger = logging.getLogger(__name__)

CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]
CONTACTS_SCOPES = ["https://www.googleapis.com/auth/contacts"]


class AuthType(str, Enum):
    """How to obtain the Google credential."""

    OAUTH = "oauth"
    SERVICE_ACCOUNT = "service-account"


def get_credentials(
    auth_type: AuthType,
    secret_file: str,
    scopes: list[str],
    token_file: Optional[str] = None,
):
    """
    Load a Google credential and make sure it holds a valid access token.

    Raises AuthError if the credential cannot be loaded or refreshed, so that
    a bad credential aborts the run before any API call is made.
    """
    if not os.path.exists(secret_file):
        raise AuthError(f"Secret file not found at {secret_file}")

    try:
        if auth_type == AuthType.SERVICE_ACCOUNT:
            credentials = _service_account_credentials(secret_file, scopes)
        else:
            credentials = _oauth_credentials(secret_file, scopes, token_file)

        if not credentials.valid:
            credentials.refresh(Request())
    except AuthError:
        raise
    except (google.auth.exceptions.GoogleAuthError, OSError, ValueError) as e:
        raise AuthError(f"Authentication failed: {e}") from e

    logger.info(f"Got token, expires {credentials.expiry}")
    return credentials


def _service_account_credentials(secret_file: str, scopes: list[str]):
    credentials = service_account.Credentials.from_service_account_file(
        secret_file, scopes=scopes
    )
    logger.info(
        f"Authenticating using service account {credentials.service_account_email}"
    )
    return credentials


def _oauth_credentials(secret_file: str, scopes: list[str], token_file: Optional[str]):
    credentials = None
    if token_file and os.path.exists(token_file):
        credentials = Credentials.from_authorized_user_file(token_file, scopes)

    if credentials and credentials.valid:
        logger.info("Authenticating using stored OAuth token")
        return credentials

    if credentials and credentials.expired and credentials.refresh_token:
        logger.info("Refreshing stored OAuth token")
        credentials.refresh(Request())
    else:
        logger.info("Authenticating using OAuth installed app flow")
        flow = InstalledAppFlow.from_client_secrets_file(secret_file, scopes)
        credentials = flow.run_local_server(port=0)

    if token_file:
        with open(token_file, "w", encoding="utf-8") as f:
            f.write(credentials.to_json())

    return credentials
