"""
Authentication - builds an Admin SDK Directory service object
"""

import logging
from pathlib import Path

import httplib2
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from grant_revoker.errors import ConfigError
from grant_revoker.settings import Settings


logger = logging.getLogger(__name__)

# If modifying these scopes, delete the token file.
SCOPES = [
    'https://www.googleapis.com/auth/admin.directory.user.readonly',
    'https://www.googleapis.com/auth/admin.directory.user.security',
]


def load_credentials(settings: Settings):
    """Load service account or cached user credentials, running the OAuth flow if needed"""
    if settings.service_account_file:
        key_path = Path(settings.service_account_file)
        if not key_path.exists():
            raise ConfigError(f"Service account key file not found: {key_path}")
        if not settings.admin_subject:
            raise ConfigError("GOOGLE_ADMIN_SUBJECT is required with a service account key")

        logger.info(f"Using service account {key_path.name} delegated to {settings.admin_subject}")
        return service_account.Credentials.from_service_account_file(
            str(key_path),
            scopes=SCOPES,
            subject=settings.admin_subject
        )

    creds = None
    token_path = Path(settings.token_path)

    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            logger.info("Refreshing expired credentials")
            creds.refresh(Request())
        else:
            credentials_path = Path(settings.credentials_path)
            if not credentials_path.exists():
                raise ConfigError(
                    f"OAuth client credentials not found at {credentials_path}. "
                    "Download credentials.json from Google Cloud Console."
                )
            flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), SCOPES)
            creds = flow.run_local_server(port=0)

        # Save the credentials for the next run
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json())

    return creds


def build_authorized_http(creds, timeout: float) -> AuthorizedHttp:
    """Authorized transport whose socket timeout bounds every API call"""
    return AuthorizedHttp(creds, http=httplib2.Http(timeout=timeout))


def build_directory_service(settings: Settings):
    """Return an authenticated admin directory_v1 service"""
    creds = load_credentials(settings)
    http = build_authorized_http(creds, settings.call_timeout)
    return build('admin', 'directory_v1', http=http, cache_discovery=False)
