"""
Recurrence helpers for recurring appointment templates.

A template's seven weekday flags define on which days it happens. These
helpers answer "does it happen on this date?" and expand the next N
occurrences using python-dateutil rrule, so callers can pick dates to clone.
"""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from dateutil.rrule import FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule

from database.models import WEEKDAY_FIELDS, Appointment
from shared.config import get_settings

# Mapping from integer (0=Monday) to dateutil weekday constants
WEEKDAY_MAP = {
    0: MO,  # Monday
    1: TU,  # Tuesday
    2: WE,  # Wednesday
    3: TH,  # Thursday
    4: FR,  # Friday
    5: SA,  # Saturday
    6: SU,  # Sunday
}


def local_today() -> date:
    """Today's date in the configured TIMEZONE."""
    return datetime.now(ZoneInfo(get_settings().TIMEZONE)).date()


def scheduled_weekdays(appointment: Appointment) -> list[int]:
    """
    Weekdays (0=Monday, 6=Sunday) flagged on a recurring template.

    Returns an empty list for one-time appointments.
    """
    if not appointment.recurring:
        return []
    return [index for index, flag in enumerate(appointment.weekday_flags) if flag]


def occurs_on(appointment: Appointment, on_date: date) -> bool:
    """
    Check whether an appointment happens on a given date.

    Recurring templates are matched on the weekday flag for on_date.weekday();
    one-time appointments on their appointment_date.

    Examples:
        Template flagged monday + wednesday:
        >>> occurs_on(template, date(2025, 1, 6))   # Monday
        True
        >>> occurs_on(template, date(2025, 1, 7))   # Tuesday
        False
    """
    if appointment.recurring:
        return bool(getattr(appointment, WEEKDAY_FIELDS[on_date.weekday()]))
    return appointment.appointment_date == on_date


def upcoming_occurrences(
    appointment: Appointment,
    start_date: date | None = None,
    count: int = 4,
) -> list[date]:
    """
    Expand the next occurrences of a recurring template.

    Args:
        appointment: Recurring template
        start_date: First date considered (inclusive). Defaults to local today.
        count: Number of occurrence dates to return

    Returns:
        Sorted list of dates. Empty when the appointment is not recurring,
        has no weekday flagged, or count is not positive.

    Example:
        Template flagged monday + wednesday, from Monday Jan 6 2025:
        >>> upcoming_occurrences(template, date(2025, 1, 6), count=4)
        [date(2025, 1, 6), date(2025, 1, 8), date(2025, 1, 13), date(2025, 1, 15)]
    """
    weekdays = scheduled_weekdays(appointment)
    if not weekdays or count <= 0:
        return []

    start = start_date or local_today()
    rule = rrule(
        freq=WEEKLY,
        dtstart=datetime.combine(start, time.min),
        byweekday=[WEEKDAY_MAP[d] for d in weekdays],
        count=count,
    )
    return sorted(dt.date() for dt in rule)
