import logging
from datetime import timedelta, timezone
from urllib.parse import urlencode

import httpx
from dateutil import parser

from app.core.config import settings
from app.core.exceptions import ExternalServiceError, ValidationError
from app.utils.timezone import utc_now

logger = logging.getLogger(__name__)

PROVIDER = "outlook"
AUTHORIZE_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
GRAPH_URL = "https://graph.microsoft.com/v1.0"
SCOPES = "https://graph.microsoft.com/calendars.read offline_access"
TIMEOUT = 15.0


def _require_config():
    if not settings.OUTLOOK_CLIENT_ID or not settings.OUTLOOK_CLIENT_SECRET:
        raise ValidationError("Outlook Calendar is not configured on this server")


def get_auth_url() -> str:
    _require_config()
    params = {
        "client_id": settings.OUTLOOK_CLIENT_ID,
        "response_type": "code",
        "redirect_uri": settings.OUTLOOK_REDIRECT_URI,
        "scope": SCOPES,
        "response_mode": "query",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


async def _token_request(data: dict) -> dict:
    _require_config()
    payload = {
        "client_id": settings.OUTLOOK_CLIENT_ID,
        "client_secret": settings.OUTLOOK_CLIENT_SECRET,
        "scope": SCOPES,
        **data,
    }
    try:
        async with httpx.AsyncClient(timeout=TIMEOUT) as client:
            resp = await client.post(TOKEN_URL, data=payload)
            resp.raise_for_status()
            body = resp.json()
    except httpx.HTTPError as e:
        raise ExternalServiceError("Failed to obtain Outlook credentials", detail=str(e)) from e

    return {
        "access_token": body.get("access_token"),
        "refresh_token": body.get("refresh_token"),
        "token_expiry": utc_now() + timedelta(seconds=int(body.get("expires_in", 3600))),
    }


async def exchange_code(code: str) -> dict:
    return await _token_request({
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": settings.OUTLOOK_REDIRECT_URI,
    })


async def refresh_tokens(integration) -> dict:
    return await _token_request({
        "grant_type": "refresh_token",
        "refresh_token": integration.refresh_token,
    })


def _parse_graph_datetime(value: str):
    # Graph sends 7 fractional digits and no offset (we ask for UTC)
    if "." in value:
        head, frac = value.split(".", 1)
        value = f"{head}.{frac[:6]}"
    return parser.isoparse(value).replace(tzinfo=timezone.utc)


def map_event(item: dict):
    """Translate a Microsoft Graph event into our event fields; None for all-day or cancelled."""
    if item.get("isAllDay") or item.get("isCancelled"):
        return None
    start = (item.get("start") or {}).get("dateTime")
    end = (item.get("end") or {}).get("dateTime")
    if not start or not end:
        return None
    return {
        "external_id": item.get("id"),
        "title": item.get("subject") or "Untitled Event",
        "description": item.get("bodyPreview"),
        "start_time": _parse_graph_datetime(start),
        "end_time": _parse_graph_datetime(end),
        "location": (item.get("location") or {}).get("displayName") or None,
        "source": PROVIDER,
        "is_ai_generated": False,
    }


async def fetch_events(integration, start, end) -> list:
    headers = {
        "Authorization": f"Bearer {integration.access_token}",
        "Prefer": 'outlook.timezone="UTC"',
    }
    url = f"{GRAPH_URL}/me/calendarview"
    params = {
        "startDateTime": start.isoformat(),
        "endDateTime": end.isoformat(),
        "$top": 250,
    }
    items = []
    try:
        async with httpx.AsyncClient(timeout=TIMEOUT) as client:
            while url:
                resp = await client.get(url, headers=headers, params=params)
                resp.raise_for_status()
                body = resp.json()
                items.extend(body.get("value", []))
                # nextLink already carries the query string
                url = body.get("@odata.nextLink")
                params = None
    except httpx.HTTPError as e:
        raise ExternalServiceError("Failed to fetch Outlook Calendar events", detail=str(e)) from e

    logger.info(f"📥 Outlook returned {len(items)} events for integration {integration.id}")
    return [mapped for mapped in (map_event(item) for item in items) if mapped]
