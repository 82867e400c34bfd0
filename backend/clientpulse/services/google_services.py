"""Authenticated Google Docs / Sheets API services."""
from googleapiclient.discovery import build
from google.oauth2 import service_account

SCOPES = [
    "https://www.googleapis.com/auth/documents.readonly",
    "https://www.googleapis.com/auth/spreadsheets.readonly",
]


def get_credentials(service_account_file: str):
    """Load service-account credentials restricted to read-only scopes."""
    if not service_account_file:
        raise ValueError("GOOGLE_SERVICE_ACCOUNT_FILE is not configured")
    return service_account.Credentials.from_service_account_file(service_account_file, scopes=SCOPES)


def get_docs_service(service_account_file: str):
    """Get authenticated Docs API service."""
    creds = get_credentials(service_account_file)
    return build("docs", "v1", credentials=creds, cache_discovery=False)


def get_sheets_service(service_account_file: str):
    """Get authenticated Sheets API service."""
    creds = get_credentials(service_account_file)
    return build("sheets", "v4", credentials=creds, cache_discovery=False)
