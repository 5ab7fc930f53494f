import asyncio
import logging
from dateutil import parser
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
import google.oauth2.credentials
from google.auth.transport.requests import Request

from app.core.config import settings
from app.core.exceptions import ExternalServiceError, ValidationError
from app.utils.timezone import ensure_utc

logger = logging.getLogger(__name__)

PROVIDER = "google"
TOKEN_URI = "https://oauth2.googleapis.com/token"

# Single source of truth for scopes
SCOPES = [
    'https://www.googleapis.com/auth/calendar.readonly',
    'https://www.googleapis.com/auth/calendar.events',
]


def _client_config():
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise ValidationError("Google Calendar is not configured on this server")
    # Use config from env instead of a client_secret.json file
    return {
        "web": {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "client_secret": settings.GOOGLE_CLIENT_SECRET,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": TOKEN_URI,
        }
    }


def _flow():
    return Flow.from_client_config(
        _client_config(),
        scopes=SCOPES,
        redirect_uri=settings.GOOGLE_REDIRECT_URI,
    )


def get_auth_url() -> str:
    auth_url, _state = _flow().authorization_url(access_type="offline", prompt="consent")
    return auth_url


async def exchange_code(code: str) -> dict:
    """
    Exchange authorization code for access and refresh tokens.
    """
    flow = _flow()
    try:
        # Blocking token request, keep it off the event loop
        await asyncio.to_thread(flow.fetch_token, code=code)
    except Exception as e:
        raise ExternalServiceError("Failed to complete Google authorization", detail=str(e)) from e

    credentials = flow.credentials
    return {
        "access_token": credentials.token,
        "refresh_token": credentials.refresh_token,
        "token_expiry": ensure_utc(credentials.expiry),
    }


async def refresh_tokens(integration) -> dict:
    creds = google.oauth2.credentials.Credentials(
        token=None,
        refresh_token=integration.refresh_token,
        token_uri=TOKEN_URI,
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        # No scopes here, the refresh keeps whatever was originally granted
    )
    try:
        await asyncio.to_thread(creds.refresh, Request())
    except Exception as e:
        raise ExternalServiceError("Failed to refresh Google credentials", detail=str(e)) from e
    return {"access_token": creds.token, "token_expiry": ensure_utc(creds.expiry)}


def map_event(item: dict):
    """
    Translate a Google Calendar event resource into our event fields.
    All-day and cancelled events are skipped (None).
    """
    if item.get("status") == "cancelled":
        return None
    start = (item.get("start") or {}).get("dateTime")
    end = (item.get("end") or {}).get("dateTime")
    if not start or not end:
        return None
    return {
        "external_id": item.get("id"),
        "title": item.get("summary") or "Untitled Event",
        "description": item.get("description"),
        "start_time": ensure_utc(parser.isoparse(start)),
        "end_time": ensure_utc(parser.isoparse(end)),
        "location": item.get("location"),
        "source": PROVIDER,
        "is_ai_generated": False,
    }


def _list_events(access_token, start, end) -> list:
    """Every page of the primary calendar between start and end (blocking)."""
    creds = google.oauth2.credentials.Credentials(token=access_token)
    cal_service = build('calendar', 'v3', credentials=creds, cache_discovery=False)
    items = []
    page_token = None
    while True:
        events_result = cal_service.events().list(
            calendarId='primary',
            timeMin=start.isoformat(),
            timeMax=end.isoformat(),
            maxResults=250,
            singleEvents=True,
            orderBy='startTime',
            pageToken=page_token,
        ).execute()
        items.extend(events_result.get('items', []))
        page_token = events_result.get('nextPageToken')
        if not page_token:
            return items


async def fetch_events(integration, start, end) -> list:
    """Provider events between start and end, already mapped and filtered."""
    try:
        items = await asyncio.to_thread(_list_events, integration.access_token, start, end)
    except Exception as e:
        raise ExternalServiceError("Failed to fetch Google Calendar events", detail=str(e)) from e

    logger.info(f"📥 Google returned {len(items)} events for integration {integration.id}")
    return [mapped for mapped in (map_event(item) for item in items) if mapped]
