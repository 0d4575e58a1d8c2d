"""
One planning cycle: collect fixed constraints, carve free slots, ask Claude to
place the flexible tasks, then validate and merge the reply.

All steps take a single snapshot of tasks, events and settings from the caller
so the slots and the constraints they were computed from always agree.
"""
import json
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Iterable

from matrix import priority_score, sort_for_planning, task_quadrant
from models import (
    CalendarEvent,
    ExpandedEventInstance,
    FreeSlot,
    ScheduleResult,
    Task,
    WorkWindowConfig,
    to_local_naive,
)
from prompts import SCHEDULE_PROMPT, SCHEDULE_SYSTEM
from recurrence import expand_fixed_tasks, is_fixed_instance
from slots import compute_free_slots, fits_in_slots

logger = logging.getLogger(__name__)

NO_CAPACITY_MESSAGE = (
    "It is impossible to generate the plan based on current constraints. "
    "Please either increase the available daily hours in Settings or extend the deadlines of your tasks."
)


class PlanningError(Exception):
    """A planning failure the user should see."""


class NoCapacityError(PlanningError):
    def __init__(self, message: str = NO_CAPACITY_MESSAGE):
        super().__init__(message)


class PlanningOverflowError(PlanningError):
    """Claude reported that the tasks cannot fit into the free slots."""

    def __init__(self, reason: str, culprit_task_ids: list[str], culprit_titles: list[str]):
        self.reason = reason
        self.culprit_task_ids = culprit_task_ids
        self.culprit_titles = culprit_titles
        message = "Planning failed."
        if reason:
            message += f" Reason: {reason}"
        if culprit_titles:
            message += " Specifically: " + ", ".join(f'"{t}"' for t in culprit_titles) + "."
        message += " Please decrease task duration or extend deadlines."
        super().__init__(message)


class InvalidAIResponseError(PlanningError):
    pass


def strip_code_fence(text: str) -> str:
    """Strip a markdown code block around a JSON reply, if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]  # Remove last line (```)
        text = "\n".join(lines)
    return text


def reply_text(response) -> str:
    """Text of the first content block of a Claude response."""
    if not response.content:
        raise InvalidAIResponseError("AI returned an empty response. Please try again.")
    return response.content[0].text


def parse_json_reply(text: str) -> dict:
    try:
        parsed = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise InvalidAIResponseError("AI returned invalid JSON format. Please try again.") from e
    if isinstance(parsed, list):
        # A bare list is taken as the schedule itself
        return {"schedule": parsed}
    if not isinstance(parsed, dict):
        raise InvalidAIResponseError("AI returned an unexpected JSON value. Please try again.")
    return parsed


def in_window(event: CalendarEvent, window_start: date, days: int) -> bool:
    """Events belong to the day they start on."""
    return window_start <= event.start.date() < window_start + timedelta(days=days)


def instance_to_event(instance: ExpandedEventInstance) -> CalendarEvent:
    return CalendarEvent(
        id=instance.id,
        title=instance.title,
        start=instance.start,
        end=instance.end,
        type="task_block",
        task_id=instance.source_task_id,
        is_fixed=True,
        reasoning="Fixed Commitment",
        quadrant="Q4",
    )


def build_fixed_constraints(
    events: Iterable[CalendarEvent],
    tasks: Iterable[Task],
    window_start: date,
    days: int,
    work_week_only: bool = False,
) -> list[CalendarEvent]:
    """
    Stored fixed events (meetings, imported calendar events) plus a fresh
    expansion of fixed tasks. Previously expanded instances are discarded
    and regenerated so edits to a fixed task are always picked up.
    """
    kept = [e for e in events if e.is_fixed and not is_fixed_instance(e.id)]
    expanded = expand_fixed_tasks(tasks, window_start, days, work_week_only)
    return kept + [instance_to_event(i) for i in expanded]


def refresh_fixed_instances(
    events: Iterable[CalendarEvent],
    tasks: Iterable[Task],
    window_start: date,
    days: int,
    work_week_only: bool = False,
) -> list[CalendarEvent]:
    """Replace expanded fixed-task instances inside the window with a fresh batch."""
    kept = [e for e in events if not (is_fixed_instance(e.id) and in_window(e, window_start, days))]
    expanded = expand_fixed_tasks(tasks, window_start, days, work_week_only)
    return kept + [instance_to_event(i) for i in expanded]


def merge_schedule(
    existing: Iterable[CalendarEvent],
    planned: Iterable[CalendarEvent],
    window_start: date,
    days: int,
) -> list[CalendarEvent]:
    """
    Keep existing events outside the window and replace everything inside it
    with the planned events. Planned events outside the window are ignored;
    on duplicate ids the last one wins.
    """
    merged: dict[str, CalendarEvent] = {}
    for event in existing:
        if not in_window(event, window_start, days):
            merged[event.id] = event
    for event in planned:
        if in_window(event, window_start, days):
            merged[event.id] = event
    return sorted(merged.values(), key=lambda e: e.start)


def _task_payload(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "priority_score": priority_score(task),
        "importance": task.relevance,
        "urgency": task.urgency,
        "deadline": task.deadline,
        "estimated_hours": task.estimated_hours,
    }


def build_schedule_prompt(tasks: list[Task], slots: list[FreeSlot], today: date) -> str:
    slots_json = json.dumps([slot.model_dump(mode="json") for slot in slots])
    tasks_json = json.dumps([_task_payload(task) for task in tasks])
    return SCHEDULE_PROMPT.format(slots=slots_json, tasks=tasks_json, today=today.isoformat())


def _parse_instant(value) -> datetime:
    return to_local_naive(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def hydrate_schedule(items: list, tasks: list[Task], slots: list[FreeSlot]) -> list[CalendarEvent]:
    """
    Turn Claude's schedule items into CalendarEvents.
    Items with unreadable times, that do not fit inside a free slot, or that
    overlap an earlier accepted block are dropped.
    """
    tasks_by_id = {task.id: task for task in tasks}
    events = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("Dropping schedule item that is not an object: %r", item)
            continue
        try:
            start = _parse_instant(item["start"])
            end = _parse_instant(item["end"])
        except (KeyError, ValueError) as e:
            logger.warning("Dropping schedule item with bad times %r: %s", item, e)
            continue
        if end <= start or not fits_in_slots(start, end, slots):
            logger.warning("Dropping schedule item outside free slots: %s %s-%s", item.get("task_id"), start, end)
            continue

        task = tasks_by_id.get(item.get("task_id"))
        title = task.title if task else item.get("title") or "Untitled"
        quadrant = item.get("quadrant") or (task_quadrant(task).value if task else "Q4")
        events.append(CalendarEvent(
            id=f"gen-{uuid.uuid4()}",
            title=title,
            start=start,
            end=end,
            type="task_block",
            task_id=item.get("task_id"),
            is_fixed=False,
            reasoning=item.get("reasoning") or "AI Scheduled",
            quadrant=quadrant,
        ))

    accepted = []
    for event in sorted(events, key=lambda e: e.start):
        if accepted and event.start < accepted[-1].end:
            logger.warning("Dropping schedule item overlapping another block: %s %s-%s", event.task_id, event.start, event.end)
            continue
        accepted.append(event)
    return accepted


async def generate_schedule(
    client,
    model: str,
    tasks: list[Task],
    fixed_events: list[CalendarEvent],
    window_start: date,
    days: int,
    config: WorkWindowConfig,
    now: datetime,
) -> ScheduleResult:
    """
    Plan the flexible tasks into the free time around fixed_events.

    Returns only the generated task blocks; merging them with the fixed
    constraints is up to the caller. Raises NoCapacityError when there is no
    free slot in the whole window, PlanningOverflowError when Claude reports
    the tasks cannot fit, and InvalidAIResponseError for unusable replies.
    anthropic.APIError propagates.
    """
    slots = compute_free_slots(fixed_events, window_start, days, config, now)
    if not slots:
        logger.warning("No free slots between %s and %s days later", window_start, days)
        raise NoCapacityError()

    flexible = sort_for_planning(t for t in tasks if not t.is_fixed and t.status != "completed")
    if not flexible:
        return ScheduleResult(schedule=[], unscheduled_task_ids=[])

    prompt = build_schedule_prompt(flexible, slots, now.date())
    logger.info("Requesting schedule for %d tasks across %d free slots", len(flexible), len(slots))
    response = await client.messages.create(
        model=model,
        max_tokens=4096,
        system=SCHEDULE_SYSTEM,
        messages=[{"role": "user", "content": prompt}],
    )
    ai_text = reply_text(response)
    logger.debug("Claude schedule response: %s", ai_text[:500])

    parsed = parse_json_reply(ai_text)
    if parsed.get("error") == "overflow":
        culprit_ids = parsed.get("culprit_task_ids") or []
        titles = [t.title for t in flexible if t.id in culprit_ids]
        raise PlanningOverflowError(parsed.get("failure_reason") or "", culprit_ids, titles)

    items = parsed.get("schedule") or []
    if not isinstance(items, list):
        raise InvalidAIResponseError("AI returned a schedule that is not a list. Please try again.")

    schedule = hydrate_schedule(items, tasks, slots)
    scheduled_ids = {e.task_id for e in schedule}
    unscheduled = [t.id for t in flexible if t.id not in scheduled_ids]
    return ScheduleResult(schedule=schedule, unscheduled_task_ids=unscheduled)
