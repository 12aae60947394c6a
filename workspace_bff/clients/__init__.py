"""Expose constructed client wrappers."""

from .dynamodb import DynamoDBClient
from .gmail import GmailClient
from .google_auth import GoogleOAuthClient, OAuthStateEncoder, OAuthTokenExchangeError
from .google_calendar import GoogleCalendarClient
from .google_tasks import GoogleTasksClient
from .google_workspace import GoogleWorkspaceClient
from .record_store import RecordStore
from .sqlite_store import SQLiteStore

__all__ = [
    "DynamoDBClient",
    "GmailClient",
    "GoogleCalendarClient",
    "GoogleOAuthClient",
    "GoogleTasksClient",
    "GoogleWorkspaceClient",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "RecordStore",
    "SQLiteStore",
]
