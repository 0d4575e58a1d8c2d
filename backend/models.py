from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

TIME_OF_DAY_FORMAT = "%H:%M"


def _to_minutes(value: datetime) -> str:
    return value.isoformat(timespec="minutes")


def to_local_naive(value: datetime) -> datetime:
    """Aware datetimes are converted to local time and made naive; naive ones pass through."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _check_time_of_day(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    datetime.strptime(value, TIME_OF_DAY_FORMAT)  # raises ValueError on bad input
    return value


class Recurrence(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    WEEKDAYS = "weekdays"


class Task(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    relevance: int = 3  # importance, 1-5
    urgency: int = 3  # 1-5
    deadline: str  # ISO format: YYYY-MM-DD
    estimated_hours: float = 1.0
    status: Literal["pending", "in-progress", "completed"] = "pending"
    completed_at: Optional[str] = None  # ISO format datetime string
    is_fixed: bool = False
    recurrence: Recurrence = Recurrence.NONE
    start_time: Optional[str] = None  # HH:MM, fixed tasks only
    finish_time: Optional[str] = None  # HH:MM, fixed tasks only
    created_at: str  # ISO format datetime string


class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    relevance: int = Field(3, ge=1, le=5)
    urgency: int = Field(3, ge=1, le=5)
    deadline: date
    estimated_hours: float = Field(1.0, ge=0)
    status: Literal["pending", "in-progress", "completed"] = "pending"
    is_fixed: bool = False
    recurrence: Recurrence = Recurrence.NONE
    start_time: Optional[str] = None
    finish_time: Optional[str] = None

    check_times = field_validator("start_time", "finish_time")(_check_time_of_day)


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    relevance: Optional[int] = Field(None, ge=1, le=5)
    urgency: Optional[int] = Field(None, ge=1, le=5)
    deadline: Optional[date] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    status: Optional[Literal["pending", "in-progress", "completed"]] = None
    is_fixed: Optional[bool] = None
    recurrence: Optional[Recurrence] = None
    start_time: Optional[str] = None
    finish_time: Optional[str] = None

    check_times = field_validator("start_time", "finish_time")(_check_time_of_day)


class CalendarEvent(BaseModel):
    id: str
    title: str
    start: datetime
    end: datetime
    type: Literal["meeting", "task_block", "break"] = "meeting"
    task_id: Optional[str] = None  # set when the event is linked to a task
    is_fixed: bool = True  # False for AI-scheduled blocks
    reasoning: Optional[str] = None
    quadrant: Optional[str] = None  # Q1..Q4

    normalize_instants = field_validator("start", "end")(to_local_naive)

    @field_serializer("start", "end")
    def serialize_instant(self, value: datetime) -> str:
        return _to_minutes(value)


class EventCreate(BaseModel):
    title: str
    start: datetime
    end: datetime
    type: Literal["meeting", "task_block", "break"] = "meeting"

    normalize_instants = field_validator("start", "end")(to_local_naive)

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError("event start must be before end")
        return self


class TimeInterval(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    normalize_instants = field_validator("start", "end")(to_local_naive)

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError("interval start must be before end")
        return self

    @field_serializer("start", "end")
    def serialize_instant(self, value: datetime) -> str:
        return _to_minutes(value)


class FixedCommitment(TimeInterval):
    title: str = ""


class WorkWindowConfig(BaseModel):
    """Working hours used to carve free slots; also the stored user settings."""
    day_start_hour: int = Field(9, ge=0, le=23)
    day_end_hour: int = Field(18, ge=0, le=23)
    work_week_only: bool = False

    @model_validator(mode="after")
    def check_window(self):
        if self.day_start_hour >= self.day_end_hour:
            raise ValueError("day_start_hour must be before day_end_hour")
        return self


class FreeSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    duration_minutes: int

    @field_serializer("start", "end")
    def serialize_instant(self, value: datetime) -> str:
        return _to_minutes(value)


class RecurringTaskSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    daily_start: str = "09:00"  # HH:MM
    daily_finish: Optional[str] = None  # HH:MM; earlier than daily_start means overnight
    recurrence_rule: Recurrence = Recurrence.NONE
    reference_date: date  # anchors the "none" and "weekly" rules
    estimated_hours: Optional[float] = None

    check_times = field_validator("daily_start", "daily_finish")(_check_time_of_day)


class ExpandedEventInstance(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # fixed-{task_id}-{YYYY-MM-DD}
    title: str
    start: datetime
    end: datetime
    source_task_id: str

    @field_serializer("start", "end")
    def serialize_instant(self, value: datetime) -> str:
        return _to_minutes(value)


class ScheduleRequest(BaseModel):
    start_date: Optional[date] = None  # defaults to today
    days: int = Field(7, ge=1, le=31)


class ScheduleResult(BaseModel):
    schedule: list[CalendarEvent]
    unscheduled_task_ids: list[str]


class Message(BaseModel):
    role: str  # "user" or "assistant"
    content: str


class ChatRequest(BaseModel):
    messages: list[Message]
