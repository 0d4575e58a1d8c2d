"""
Normalization of already-fetched Google Calendar items into fixed CalendarEvents.
Fetching (OAuth, HTTP) happens elsewhere.
"""
import logging
from datetime import datetime

from models import CalendarEvent, to_local_naive

logger = logging.getLogger(__name__)

GOOGLE_EVENT_PREFIX = "google-"


def _parse_google_time(value: dict) -> datetime:
    """
    Google returns "dateTime" for timed events and "date" for all-day events.
    Offsets are converted to naive local time.
    """
    if not isinstance(value, dict):
        raise ValueError(f"event time is not an object: {value!r}")
    raw = value.get("dateTime") or value.get("date")
    if not raw or not isinstance(raw, str):
        raise ValueError("event time has neither dateTime nor date")
    return to_local_naive(datetime.fromisoformat(raw.replace("Z", "+00:00")))


def normalize_google_event(item: dict) -> CalendarEvent:
    return CalendarEvent(
        id=f"{GOOGLE_EVENT_PREFIX}{item['id']}",
        title=item.get("summary") or "No Title",
        start=_parse_google_time(item.get("start") or {}),
        end=_parse_google_time(item.get("end") or {}),
        type="meeting",
        is_fixed=True,
        reasoning="Google Calendar Event",
        quadrant="Q4",
    )


def normalize_google_events(items: list[dict]) -> list[CalendarEvent]:
    """Normalize a Calendar API "items" list, skipping entries that cannot be used."""
    events = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("Skipping calendar item that is not an object: %r", item)
            continue
        try:
            event = normalize_google_event(item)
        except (KeyError, ValueError) as e:
            logger.warning("Skipping calendar item %s: %s", item.get("id"), e)
            continue
        if event.end <= event.start:
            logger.warning("Skipping calendar item %s: ends before it starts", item.get("id"))
            continue
        events.append(event)
    return events
