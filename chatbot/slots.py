"""
Best-effort extraction of a booking request (camp, date, time) from chat text.

Nothing here raises on bad input: a pattern that matches but cannot be turned
into a real value simply leaves its slot empty (times fall back to 10:00 AM).
"""
import re
from datetime import date, timedelta

from django.utils import timezone

BOOKING_KEYWORDS = ("book", "schedule", "appointment", "reserve", "sign up", "register", "slot")

DEFAULT_TIME = "10:00 AM"

MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_MONTH = r"(" + "|".join(sorted(MONTHS, key=len, reverse=True)) + r")\.?"
_ORD = r"(?:st|nd|rd|th)?"

ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
NUMERIC_DATE_RE = re.compile(r"\b(\d{1,2})[/.](\d{1,2})[/.](\d{2}|\d{4})\b")
MONTH_FIRST_RE = re.compile(r"\b" + _MONTH + r"\s+(\d{1,2})" + _ORD + r"(?:,?\s+(\d{4}))?\b")
DAY_FIRST_RE = re.compile(r"\b(\d{1,2})" + _ORD + r"\s+(?:of\s+)?" + _MONTH + r"(?:,?\s+(\d{4}))?\b")
TOMORROW_RE = re.compile(r"\btomorrow\b")
NEXT_WEEKDAY_RE = re.compile(r"\bnext\s+(" + "|".join(WEEKDAYS) + r")\b")

TIME_MERIDIEM_RE = re.compile(r"\b(\d{1,2}):(\d{2})\s*([ap])\.?\s*m\b\.?")
HOUR_MERIDIEM_RE = re.compile(r"\b(\d{1,2})\s*([ap])\.?\s*m\b\.?")
TIME_24_RE = re.compile(r"\b(\d{1,2}):(\d{2})\b")
NOON_RE = re.compile(r"\bnoon\b")
AT_HOUR_RE = re.compile(r"\b(?:at|around|by)\s+(\d{1,2})\b(?![:/.-]\d)")

CAMP_ID_RE = re.compile(r"\b(?:camp\s*)?id\s*[:#]?\s*(\d+)\b")
CAMP_ORDINAL_RE = re.compile(r"\bcamp\s*(?:#|no\.?|number)?\s*(\d{1,2})\b")


def has_booking_intent(text):
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in BOOKING_KEYWORDS)


# ---------------- Camps ----------------

def resolve_camp(text, camps):
    """Pick one of ``camps`` (ordered, as listed to the user) named in ``text``."""
    lowered = (text or "").lower()
    if not lowered or not camps:
        return None

    by_name = [c for c in camps if c.name and c.name.lower() in lowered]
    if by_name:
        return max(by_name, key=lambda c: len(c.name))

    m = CAMP_ID_RE.search(lowered)
    if m:
        wanted = int(m.group(1))
        for camp in camps:
            if camp.pk == wanted:
                return camp

    m = CAMP_ORDINAL_RE.search(lowered)
    if m:
        n = int(m.group(1))
        if 1 <= n <= len(camps):
            return camps[n - 1]
        for camp in camps:
            if camp.pk == n:
                return camp
    return None


# ---------------- Dates ----------------

def _build_date(year, month, day):
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _without_year(month, day, today):
    found = _build_date(today.year, month, day)
    if found is not None and found < today:
        found = _build_date(today.year + 1, month, day)
    return found


def _with_optional_year(year, month, day, today):
    if year:
        return _build_date(int(year), month, day)
    return _without_year(month, day, today)


def parse_date(text, today=None):
    """First matching date pattern wins; an impossible date yields ``None``."""
    lowered = (text or "").lower()
    today = today or timezone.localdate()

    m = ISO_DATE_RE.search(lowered)
    if m:
        return _build_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = NUMERIC_DATE_RE.search(lowered)
    if m:
        year = int(m.group(3))
        if year < 100:
            year += 2000
        return _build_date(year, int(m.group(2)), int(m.group(1)))

    m = MONTH_FIRST_RE.search(lowered)
    if m:
        return _with_optional_year(m.group(3), MONTHS[m.group(1)], int(m.group(2)), today)

    m = DAY_FIRST_RE.search(lowered)
    if m:
        return _with_optional_year(m.group(3), MONTHS[m.group(2)], int(m.group(1)), today)

    if TOMORROW_RE.search(lowered):
        return today + timedelta(days=1)

    m = NEXT_WEEKDAY_RE.search(lowered)
    if m:
        target = WEEKDAYS.index(m.group(1))
        ahead = (target - today.weekday()) % 7 or 7
        return today + timedelta(days=ahead)

    return None


def snap_to_available(requested, available):
    """
    The available date closest to ``requested`` (by whole days). Ties go to
    the earlier date. ``None`` when nothing is available.
    """
    if requested is None:
        return None
    candidates = sorted(set(available or ()))
    if not candidates:
        return None
    if requested in candidates:
        return requested

    best = candidates[0]
    best_gap = abs((best - requested).days)
    for candidate in candidates[1:]:
        gap = abs((candidate - requested).days)
        if gap < best_gap:
            best, best_gap = candidate, gap
    return best


# ---------------- Times ----------------

def _format_time(hour, minute, meridiem):
    return f"{hour}:{minute:02d} {meridiem}"


def _infer_meridiem(hour, minute):
    if hour > 23 or minute > 59:
        return DEFAULT_TIME
    if hour == 0:
        return _format_time(12, minute, "AM")
    if 1 <= hour <= 6:
        return _format_time(hour, minute, "PM")
    if 7 <= hour <= 11:
        return _format_time(hour, minute, "AM")
    if hour == 12:
        return _format_time(12, minute, "PM")
    return _format_time(hour - 12, minute, "PM")


def _explicit(hour, minute, letter):
    if not 1 <= hour <= 12 or minute > 59:
        return DEFAULT_TIME
    return _format_time(hour, minute, "AM" if letter == "a" else "PM")


def parse_time(text):
    """Normalised "h:mm AM/PM", the 10:00 AM fallback for unusable matches, or ``None``."""
    lowered = (text or "").lower()

    m = TIME_MERIDIEM_RE.search(lowered)
    if m:
        return _explicit(int(m.group(1)), int(m.group(2)), m.group(3))

    m = HOUR_MERIDIEM_RE.search(lowered)
    if m:
        return _explicit(int(m.group(1)), 0, m.group(2))

    m = TIME_24_RE.search(lowered)
    if m:
        return _infer_meridiem(int(m.group(1)), int(m.group(2)))

    if NOON_RE.search(lowered):
        return "12:00 PM"

    m = AT_HOUR_RE.search(lowered)
    if m:
        return _infer_meridiem(int(m.group(1)), 0)

    return None


# ---------------- Conversation ----------------

def _user_turns_newest_first(history):
    return [turn["text"] for turn in reversed(history or []) if turn.get("role") == "user"]


def extract_booking_request(message, history, camps, today=None):
    """
    Fill camp / date / time from the current message, then from earlier user
    turns (newest first) for whatever is still missing.

    Returns a dict with ``camp``, ``date`` (snapped to the camp's upcoming
    dates), ``time``, ``intent`` and ``ready`` (all slots filled and the
    current message asked for or added something).
    """
    today = today or timezone.localdate()
    camps = list(camps or [])

    camp = resolve_camp(message, camps)
    requested = parse_date(message, today)
    time = parse_time(message)
    intent_now = has_booking_intent(message)
    contributes = intent_now or any(v is not None for v in (camp, requested, time))

    earlier = _user_turns_newest_first(history)
    intent = intent_now or any(has_booking_intent(t) for t in earlier)

    for text in earlier:
        if camp is not None and requested is not None and time is not None:
            break
        camp = camp or resolve_camp(text, camps)
        requested = requested or parse_date(text, today)
        time = time or parse_time(text)

    if camp is None and intent and camps:
        camp = camps[0]

    booked_date = None
    if camp is not None and requested is not None:
        booked_date = snap_to_available(requested, camp.future_dates(today))

    ready = bool(camp is not None and booked_date is not None and time and contributes)
    return {
        "intent": intent,
        "camp": camp,
        "requested_date": requested,
        "date": booked_date,
        "time": time,
        "ready": ready,
    }
