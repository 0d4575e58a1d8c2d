"""
Recurrence expansion for fixed tasks.

A fixed task has a daily start/finish time and a recurrence rule. Expanding it
over a window of days produces one calendar instance per matching day, with an
id derived from (task id, date) so re-expanding the same window yields the
same instances.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from models import TIME_OF_DAY_FORMAT, ExpandedEventInstance, Recurrence, RecurringTaskSpec, Task

logger = logging.getLogger(__name__)

FIXED_EVENT_PREFIX = "fixed-"
DEFAULT_START_TIME = "09:00"
DEFAULT_DURATION_HOURS = 1.0
MAX_DURATION_HOURS = 24.0


def parse_time_of_day(value: str) -> time:
    """Parse "HH:MM" into a time. Raises ValueError on anything else."""
    return datetime.strptime(value, TIME_OF_DAY_FORMAT).time()


def fixed_event_id(task_id: str, day: date) -> str:
    return f"{FIXED_EVENT_PREFIX}{task_id}-{day.isoformat()}"


def does_rule_match_date(rule: Recurrence, target: date, reference_date: date) -> bool:
    """
    Check if a recurrence rule includes a specific date.
    reference_date anchors the weekly rule (same weekday) and the
    one-off rule (same date).
    """
    if rule == Recurrence.DAILY:
        return True

    if rule == Recurrence.WEEKDAYS:
        return target.weekday() < 5  # Mon-Fri

    if rule == Recurrence.WEEKLY:
        return target.weekday() == reference_date.weekday()

    # Recurrence.NONE: single instance on the reference date
    return target == reference_date


def instance_bounds(spec: RecurringTaskSpec, day: date) -> tuple[datetime, datetime]:
    """Start and end of a task's instance on a given day."""
    start = datetime.combine(day, parse_time_of_day(spec.daily_start))

    if spec.daily_finish:
        end = datetime.combine(day, parse_time_of_day(spec.daily_finish))
        if end <= start:
            # Finish at or before start wraps past midnight
            end += timedelta(days=1)
        return start, end

    hours = spec.estimated_hours
    if not hours or hours <= 0:
        hours = DEFAULT_DURATION_HOURS
    hours = min(hours, MAX_DURATION_HOURS)
    return start, start + timedelta(hours=hours)


def expand_recurring_tasks(
    tasks: Iterable[RecurringTaskSpec],
    window_start: date,
    days_to_expand: int,
    work_week_only: bool = False,
) -> list[ExpandedEventInstance]:
    """
    Expand recurring task specs into calendar instances over
    [window_start, window_start + days_to_expand).

    Instances are ordered by task, then by date. Overlaps between different
    tasks are left alone. With work_week_only, weekend dates are skipped.
    """
    if days_to_expand < 1:
        raise ValueError(f"days_to_expand must be at least 1, got {days_to_expand}")

    instances: list[ExpandedEventInstance] = []
    for spec in tasks:
        for offset in range(days_to_expand):
            day = window_start + timedelta(days=offset)
            if work_week_only and day.weekday() >= 5:
                continue
            if not does_rule_match_date(spec.recurrence_rule, day, spec.reference_date):
                continue

            start, end = instance_bounds(spec, day)
            instances.append(ExpandedEventInstance(
                id=fixed_event_id(spec.id, day),
                title=spec.title,
                start=start,
                end=end,
                source_task_id=spec.id,
            ))

    logger.debug("Expanded %d fixed instances from %s over %d days", len(instances), window_start, days_to_expand)
    return instances


def spec_from_task(task: Task) -> RecurringTaskSpec:
    """Build a recurring spec from a stored task. The deadline's date is the reference date."""
    return RecurringTaskSpec(
        id=task.id,
        title=task.title,
        daily_start=task.start_time or DEFAULT_START_TIME,
        daily_finish=task.finish_time or None,
        recurrence_rule=task.recurrence,
        reference_date=date.fromisoformat(task.deadline[:10]),
        estimated_hours=task.estimated_hours,
    )


def expand_fixed_tasks(
    tasks: Iterable[Task],
    window_start: date,
    days_to_expand: int = 7,
    work_week_only: bool = False,
) -> list[ExpandedEventInstance]:
    """Expand every fixed task in the list; flexible tasks are ignored."""
    specs = [spec_from_task(task) for task in tasks if task.is_fixed]
    return expand_recurring_tasks(specs, window_start, days_to_expand, work_week_only)


def is_fixed_instance(event_id: str, task_id: Optional[str] = None) -> bool:
    """True for ids produced by expansion, optionally for one task only."""
    prefix = FIXED_EVENT_PREFIX if task_id is None else f"{FIXED_EVENT_PREFIX}{task_id}-"
    return event_id.startswith(prefix)
