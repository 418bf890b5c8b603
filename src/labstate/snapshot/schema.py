"""Pydantic schema of the persisted lab-state snapshot."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SCHEMA_VERSION = "1.0"

ActivityLevel = Literal["high", "medium", "low", "idle"]
EventType = Literal["decision", "milestone", "ship", "incident", "pulse"]
EventSource = Literal["manual", "git", "deploy", "system"]
ProjectStatus = Literal["idea", "build", "shipped", "paused"]
SystemHealth = Literal["operational", "degraded"]

EVENT_TYPES: tuple[str, ...] = ("decision", "milestone", "ship", "incident", "pulse")
REQUIRED_TOP_LEVEL_KEYS: tuple[str, ...] = ("meta", "projects", "timeline_events", "derived")


class Meta(BaseModel):
    generated_at: str
    version: str = SCHEMA_VERSION
    system_health: SystemHealth = "operational"


class GlobalDerived(BaseModel):
    """Global focus and health; ``tenure_start`` carries focus hysteresis across runs."""

    current_focus_project_id: str | None = None
    tenure_start: str | None = None
    focus_score: int = 0
    activity_level: ActivityLevel = "idle"
    global_health: int = 0


class HealthBreakdown(BaseModel):
    activity: int = Field(0, ge=0, le=100)
    delivery: int = Field(0, ge=0, le=100)
    stability: int = Field(0, ge=0, le=100)
    decision_velocity: int = Field(0, ge=0, le=100)


class HealthScore(BaseModel):
    score: int = Field(..., ge=0, le=100)
    previous_score: int = Field(..., ge=0, le=100)
    last_calculated_at: str
    breakdown: HealthBreakdown
    change_reason: str


class ProjectDerived(BaseModel):
    focus_score: int = 0
    activity_level: ActivityLevel = "idle"
    last_decision_date: str | None = None
    last_ship_date: str | None = None
    last_event_date: str | None = None


class Project(BaseModel):
    """A tracked project; authored case-study fields ride along as extras."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    description: str = ""
    status: ProjectStatus = "idea"
    repository_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    derived: ProjectDerived = Field(default_factory=ProjectDerived)
    timeline_event_ids: list[str] = Field(default_factory=list)
    health: HealthScore | None = None


class EventDerived(BaseModel):
    summary_text: str = ""
    impact_score: int = 0


class TimelineEvent(BaseModel):
    id: str
    project_id: str
    type: EventType
    date: str
    title: str
    details: dict[str, Any] = Field(default_factory=dict)
    source: EventSource
    derived: EventDerived = Field(default_factory=EventDerived)


class LabState(BaseModel):
    """Top-level snapshot. ``tools``, ``notes`` and ``profile`` are authored elsewhere and passed through."""

    meta: Meta
    derived: GlobalDerived
    projects: list[Project] = Field(default_factory=list)
    timeline_index: list[str] = Field(default_factory=list)
    timeline_events: dict[str, TimelineEvent] = Field(default_factory=dict)
    tools: list[dict[str, Any]] = Field(default_factory=list)
    notes: list[dict[str, Any]] = Field(default_factory=list)
    profile: dict[str, Any] | None = None
