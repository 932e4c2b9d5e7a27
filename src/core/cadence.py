"""Cadence parsing and due-date evaluation for recurring task templates.

Every cadence is expressed as a cron expression firing at midnight
("0 0 * * *" for daily, "0 0 * * W" for weekly on weekday W, 0=Sunday).
The current period of a template starts at the latest firing on or before
today; a template is due when its watermark predates that period start.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from croniter import croniter

from src.core.config import Constants
from src.core.errors import ConfigurationError
from src.domain.recurring_task import CadenceKind, RecurringTaskTemplate


WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


@dataclass(frozen=True)
class Cadence:
    """A validated recurrence rule."""

    kind: CadenceKind
    weekday: int | None = None  # 0=Sunday .. 6=Saturday, weekly only


@dataclass(frozen=True)
class CadenceDecision:
    """Outcome of evaluating one template against an instant."""

    due: bool
    due_date: datetime | None = None
    period_start: date | None = None


NOT_DUE = CadenceDecision(due=False)


def parse_cadence(template: RecurringTaskTemplate) -> Cadence:
    """Validate the cadence kind and parameter of a template.

    Raises:
        ConfigurationError: If the kind is unknown, a weekly parameter is missing
            or outside 0-6, or a daily template carries a parameter
    """
    kind = template.recurrence_type.strip().lower()
    details = template.recurrence_details

    if kind == CadenceKind.DAILY:
        if details is not None:
            msg = f"Daily template must not have recurrence_details, got {details!r}"
            raise ConfigurationError(msg, template_id=template.id)
        return Cadence(kind=CadenceKind.DAILY)

    if kind == CadenceKind.WEEKLY:
        if details is None:
            msg = "Weekly template is missing recurrence_details (weekday 0-6)"
            raise ConfigurationError(msg, template_id=template.id)
        try:
            weekday = int(details)
        except ValueError:
            msg = f"Invalid recurrence_details for weekly template: {details!r}"
            raise ConfigurationError(msg, template_id=template.id) from None
        if not 0 <= weekday <= 6:  # noqa: PLR2004
            msg = f"Invalid recurrence_details for weekly template: {details!r} (expected 0-6)"
            raise ConfigurationError(msg, template_id=template.id)
        return Cadence(kind=CadenceKind.WEEKLY, weekday=weekday)

    msg = f"Unsupported recurrence_type: {template.recurrence_type!r}"
    raise ConfigurationError(msg, template_id=template.id)


def cadence_to_cron(cadence: Cadence) -> str:
    """Express a cadence as a cron expression firing at the start of each period."""
    if cadence.kind == CadenceKind.WEEKLY:
        return f"0 0 * * {cadence.weekday}"
    return "0 0 * * *"


def cadence_to_human(cadence: Cadence) -> str:
    """Describe a cadence for log lines (e.g., "daily", "every Monday")."""
    if cadence.kind == CadenceKind.WEEKLY and cadence.weekday is not None:
        return f"every {WEEKDAY_NAMES[cadence.weekday]}"
    return "daily"


def current_period_start(cadence: Cadence, today: date) -> date:
    """Return the latest period start on or before today.

    For weekly cadences this is the most recent target weekday, which is
    today itself when today matches.
    """
    end_of_today = datetime.combine(today, time(23, 59, 59))
    return croniter(cadence_to_cron(cadence), end_of_today).get_prev(datetime).date()


def _as_aware(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now


def evaluate(template: RecurringTaskTemplate, now: datetime) -> CadenceDecision:
    """Decide whether a template owes a new task instance at the given instant.

    Calendar days are taken in now's timezone (naive instants are UTC). The
    rules apply in order: not started, expired, then the cadence check. A
    period that began before the start date is never due.

    Raises:
        ConfigurationError: If the template's cadence is invalid
    """
    now = _as_aware(now)
    tz = now.tzinfo
    today = now.date()

    if today < template.start_date:
        return NOT_DUE

    if template.end_date is not None and template.end_date < today:
        return NOT_DUE

    cadence = parse_cadence(template)
    occurrence = current_period_start(cadence, today)
    if occurrence < template.start_date:
        return NOT_DUE

    period_start = datetime.combine(occurrence, time.min, tzinfo=tz)

    watermark = template.last_generated_at
    if watermark is not None and watermark >= period_start:
        return NOT_DUE

    due_date = datetime.combine(occurrence, Constants.END_OF_DAY, tzinfo=tz)
    return CadenceDecision(due=True, due_date=due_date, period_start=occurrence)


def format_timestamp(value: datetime) -> str:
    """Serialize an instant as an absolute UTC ISO-8601 string ("...Z")."""
    return _as_aware(value).astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def days_since(value: datetime, now: datetime) -> int:
    """Whole days between two instants, used when logging catch-up generation."""
    return (_as_aware(now) - _as_aware(value)) // timedelta(days=1)
