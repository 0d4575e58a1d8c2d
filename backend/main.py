from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from datetime import date, datetime
from typing import Optional
import logging
import uuid
import os
import anthropic
from dotenv import find_dotenv, load_dotenv

# Load .env before the local modules read their settings at import time
load_dotenv(find_dotenv(usecwd=True))

from models import (
    CalendarEvent,
    ChatRequest,
    EventCreate,
    ExpandedEventInstance,
    FreeSlot,
    ScheduleRequest,
    ScheduleResult,
    Task,
    TaskCreate,
    TaskUpdate,
    WorkWindowConfig,
)
from database import (
    init_db,
    get_all_tasks,
    get_task_db,
    create_task_db,
    update_task_db,
    delete_task_db,
    get_all_events,
    save_events_db,
    replace_events_db,
    delete_event_db,
    get_settings,
    save_settings,
)
from calendar_import import normalize_google_events
from matrix import QUADRANT_LABELS, group_by_quadrant, pending_hours_by_quadrant, scheduled_hours_by_day
from planner import (
    InvalidAIResponseError,
    NoCapacityError,
    PlanningOverflowError,
    build_fixed_constraints,
    generate_schedule,
    merge_schedule,
    parse_json_reply,
    refresh_fixed_instances,
    reply_text,
)
from prompts import CHAT_PROMPT
from recurrence import expand_fixed_tasks
from slots import compute_free_slots

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:5173").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5")
client = anthropic.AsyncAnthropic(api_key=ANTHROPIC_API_KEY)

MAX_WINDOW_DAYS = 31


def api_key_configured() -> bool:
    return bool(ANTHROPIC_API_KEY) and ANTHROPIC_API_KEY != "your-api-key-here"


# Tasks
@app.get("/tasks")
def get_tasks() -> list[Task]:
    return get_all_tasks()


@app.post("/tasks")
def create_task(task_data: TaskCreate) -> Task:
    task_id = str(uuid.uuid4())
    return create_task_db(task_id, **task_data.model_dump())


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate) -> Task:
    result = update_task_db(task_id, **task_data.model_dump(exclude_unset=True))
    if not result:
        raise HTTPException(status_code=404, detail="Task not found")
    return result


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str) -> dict:
    if not delete_task_db(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "deleted"}


@app.get("/matrix")
def get_matrix() -> dict:
    """Open tasks grouped by Eisenhower quadrant."""
    open_tasks = [t for t in get_all_tasks() if t.status != "completed"]
    return {
        quadrant.value: {"label": QUADRANT_LABELS[quadrant], "tasks": tasks}
        for quadrant, tasks in group_by_quadrant(open_tasks).items()
    }


# Events
@app.get("/events")
def get_events() -> list[CalendarEvent]:
    return get_all_events()


@app.post("/events")
def create_event(event_data: EventCreate) -> CalendarEvent:
    """Add a manual fixed event, e.g. a meeting."""
    event = CalendarEvent(
        id=f"manual-{uuid.uuid4()}",
        title=event_data.title,
        start=event_data.start,
        end=event_data.end,
        type=event_data.type,
        is_fixed=True,
    )
    save_events_db([event])
    return event


@app.post("/events/import")
def import_events(items: list[dict]) -> dict:
    """Import already-fetched Google Calendar items as fixed events."""
    events = normalize_google_events(items)
    imported = save_events_db(events)
    logger.info("Imported %d of %d calendar items", imported, len(items))
    return {"imported": imported, "skipped": len(items) - imported}


@app.delete("/events/{event_id}")
def delete_event(event_id: str) -> dict:
    if not delete_event_db(event_id):
        raise HTTPException(status_code=404, detail="Event not found")
    return {"status": "deleted"}


# Settings
@app.get("/settings")
def read_settings() -> WorkWindowConfig:
    return get_settings()


@app.put("/settings")
def update_settings(config: WorkWindowConfig) -> WorkWindowConfig:
    return save_settings(config)


# Planning
@app.get("/fixed-events")
def get_fixed_events(
    start: Optional[date] = None,
    days: int = Query(7, ge=1, le=MAX_WINDOW_DAYS),
) -> list[ExpandedEventInstance]:
    """Fixed tasks expanded into calendar instances for the window."""
    start = start or date.today()
    return expand_fixed_tasks(get_all_tasks(), start, days, get_settings().work_week_only)


@app.post("/fixed-events/refresh")
def refresh_fixed_events(request: ScheduleRequest) -> list[CalendarEvent]:
    """Regenerate stored fixed-task instances for the window."""
    start = request.start_date or date.today()
    events = refresh_fixed_instances(
        get_all_events(), get_all_tasks(), start, request.days, get_settings().work_week_only
    )
    replace_events_db(events)
    return events


@app.get("/slots")
def get_free_slots(
    start: Optional[date] = None,
    days: int = Query(7, ge=1, le=MAX_WINDOW_DAYS),
) -> list[FreeSlot]:
    """Free time left in the working hours after fixed events and fixed tasks."""
    start = start or date.today()
    settings = get_settings()
    constraints = build_fixed_constraints(
        get_all_events(), get_all_tasks(), start, days, settings.work_week_only
    )
    return compute_free_slots(constraints, start, days, settings, datetime.now())


@app.post("/schedule")
async def create_schedule(request: ScheduleRequest) -> ScheduleResult:
    """Generate a plan for the window with Claude and store it."""
    if not api_key_configured():
        raise HTTPException(status_code=503, detail="API key not configured")

    start = request.start_date or date.today()
    # One snapshot for the whole planning cycle
    tasks = get_all_tasks()
    events = get_all_events()
    settings = get_settings()

    constraints = build_fixed_constraints(events, tasks, start, request.days, settings.work_week_only)
    try:
        result = await generate_schedule(
            client, ANTHROPIC_MODEL, tasks, constraints, start, request.days, settings, datetime.now()
        )
    except (NoCapacityError, PlanningOverflowError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidAIResponseError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except anthropic.APIError as e:
        logger.error("Claude API error during planning: %s", e)
        raise HTTPException(status_code=502, detail=f"API error: {e}")

    replace_events_db(merge_schedule(events, constraints + result.schedule, start, request.days))
    logger.info(
        "Planned %d blocks, %d tasks unscheduled", len(result.schedule), len(result.unscheduled_task_ids)
    )
    return result


@app.get("/dashboard")
def get_dashboard(
    start: Optional[date] = None,
    days: int = Query(7, ge=1, le=MAX_WINDOW_DAYS),
) -> dict:
    start = start or date.today()
    tasks = get_all_tasks()
    return {
        "pending_hours": pending_hours_by_quadrant(tasks),
        "scheduled_hours": scheduled_hours_by_day(get_all_events(), start, days),
        "completed_tasks": sum(1 for t in tasks if t.status == "completed"),
        "open_tasks": sum(1 for t in tasks if t.status != "completed"),
    }


# Chat
@app.post("/chat")
async def chat(chat_request: ChatRequest) -> dict:
    """Answer a message with Claude; may create a task on request."""

    if not api_key_configured():
        return {"response": "API key not configured", "tasks": get_all_tasks()}

    tasks = get_all_tasks()
    task_list = "\n".join(
        f"- {t.id}: {t.title} (status {t.status}, importance {t.relevance}, urgency {t.urgency})"
        for t in tasks
    )
    today = date.today().isoformat()
    system_prompt = CHAT_PROMPT.format(tasks=task_list or "(none)", today=today)
    api_messages = [{"role": m.role, "content": m.content} for m in chat_request.messages]

    # Call Claude API
    try:
        response = await client.messages.create(
            model=ANTHROPIC_MODEL,
            max_tokens=512,
            system=system_prompt,
            messages=api_messages
        )
        parsed = parse_json_reply(reply_text(response))
    except (anthropic.APIError, InvalidAIResponseError) as e:
        logger.error("Chat failed: %s", e)
        return {
            "response": "I'm having trouble connecting to my brain right now. Try again later.",
            "tasks": tasks,
        }

    message = parsed.get("text", "Done")
    if parsed.get("action") == "add_task":
        task_data = parsed.get("task_data") or {}
        try:
            if not isinstance(task_data, dict):
                raise ValueError("task_data is not an object")
            new_task = TaskCreate(
                title=task_data["title"],
                description=task_data.get("description"),
                urgency=task_data.get("urgency") or 3,
                relevance=task_data.get("relevance") or 3,
                deadline=task_data.get("deadline") or today,
                estimated_hours=task_data.get("estimated_hours") or 1,
            )
        except (KeyError, ValueError) as e:
            logger.warning("Ignoring add_task action with bad data %r: %s", task_data, e)
            message = "Sorry, I couldn't work out the details of that task."
        else:
            create_task(new_task)

    return {"response": message, "tasks": get_all_tasks()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
