"""Lab-state refresh pipeline orchestration."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from labstate.compute.focus import FocusCandidate, compute_focus
from labstate.compute.health import compute_health
from labstate.config import settings
from labstate.dates import isoformat, round_half_up, utc_now
from labstate.ingest.adapters.base import SignalAdapter
from labstate.ingest.engine import IngestionEngine
from labstate.ingest.pulses import PulseSummary, aggregate, group_by_project
from labstate.projects import ProjectMetadata, ProjectSource, load_ingestion_config, load_project_metadata
from labstate.snapshot.schema import GlobalDerived, LabState, Meta, Project, ProjectDerived, TimelineEvent
from labstate.snapshot.writer import SnapshotWriter
from labstate.timeline import latest_event_date, merge_timeline, project_events, timeline_index

logger = structlog.get_logger()


@dataclass(frozen=True)
class TrackedProject:
    source: ProjectSource
    metadata: ProjectMetadata


def select_published(sources: Sequence[ProjectSource]) -> list[TrackedProject]:
    tracked: list[TrackedProject] = []
    for source in sources:
        metadata = load_project_metadata(source.content_root)
        if not metadata.published:
            logger.info("Skipping unpublished project", project=source.id)
            continue
        tracked.append(TrackedProject(source=source, metadata=metadata))
    return tracked


def build_project(
    tracked: TrackedProject,
    previous: Project | None,
    pulses: Sequence[PulseSummary],
    events: dict[str, TimelineEvent],
    now: datetime,
) -> Project:
    """Assemble a project with fresh health; focus fields are filled in later."""
    project_id = tracked.source.id
    metadata = tracked.metadata
    timeline = project_events(events, project_id)
    last_ship = latest_event_date(timeline, "ship")
    last_decision = latest_event_date(timeline, "decision")

    health = compute_health(
        project_id,
        pulses,
        last_ship_date=last_ship,
        last_decision_date=last_decision,
        previous_health=previous.health if previous else None,
        now=now,
    )

    # Authored extras from the previous snapshot first, then from project.md
    extras: dict[str, Any] = dict(previous.model_extra or {}) if previous else {}
    extras.update(metadata.authored_fields())
    extras = {key: value for key, value in extras.items() if key not in Project.model_fields}

    return Project(
        id=project_id,
        name=metadata.name or (previous.name if previous else project_id),
        description=metadata.description or (previous.description if previous else ""),
        status=metadata.status or (previous.status if previous else "idea"),
        repository_url=metadata.resolved_repository_url() or (previous.repository_url if previous else None),
        tags=metadata.tags or (previous.tags if previous else []),
        timeline_event_ids=[event.id for event in timeline],
        health=health,
        derived=ProjectDerived(
            last_decision_date=last_decision,
            last_ship_date=last_ship,
            last_event_date=timeline[0].date if timeline else None,
        ),
        **extras,
    )


def run_refresh(
    *,
    projects_path: str | None = None,
    state_path: str | None = None,
    focus_override: str | None = None,
    dry_run: bool = False,
    adapters: Sequence[SignalAdapter] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Full pipeline: read previous snapshot, ingest, derive, write.

    Returns:
        dict with pipeline stats; ``success`` is False when the snapshot was
        not written (the previous file is left as it was).
    """
    now = now or utc_now()
    writer = SnapshotWriter(state_path or settings.state_path)
    focus_override = focus_override or settings.focus_override

    stats: dict[str, Any] = {
        "generated_at": isoformat(now),
        "dry_run": dry_run,
        "projects": 0,
        "signals": 0,
        "pulses": 0,
        "timeline_events": 0,
        "adapter_failures": 0,
        "focus": None,
        "success": False,
    }

    try:
        # 1. Previous state
        previous = writer.read()
        if previous is None:
            logger.info("No previous snapshot, cold start", path=str(writer.path))
        previous_projects = {project.id: project for project in previous.projects} if previous else {}

        # 2. Eligible projects
        config = load_ingestion_config(projects_path or settings.projects_path)
        tracked = select_published(config.projects)
        stats["projects"] = len(tracked)

        # 3. Ingest
        logger.info("Ingesting signals...")
        engine = IngestionEngine([item.source for item in tracked], adapters=adapters)
        signals = asyncio.run(engine.fetch_all_signals())
        stats["signals"] = len(signals)
        stats["adapter_failures"] = len(engine.failures)

        # 4. Pulses
        pulses = aggregate(signals)
        pulses_by_project = group_by_project(pulses)
        stats["pulses"] = len(pulses)
        logger.info("Pulses aggregated", pulses=len(pulses))

        # 5. Timeline
        events = merge_timeline(previous.timeline_events if previous else {}, signals, pulses)
        stats["timeline_events"] = len(events)

        # 6. Health per project
        projects = [
            build_project(
                item,
                previous_projects.get(item.source.id),
                pulses_by_project.get(item.source.id, []),
                events,
                now,
            )
            for item in tracked
        ]

        # 7. Focus, once across all projects
        logger.info("Computing focus...")
        focus = compute_focus(
            [
                FocusCandidate(
                    project_id=project.id,
                    pulses=pulses_by_project.get(project.id, []),
                    last_decision_date=project.derived.last_decision_date,
                    health=project.health,
                )
                for project in projects
            ],
            previous_state=previous.derived if previous else None,
            manual_override_project_id=focus_override,
            now=now,
        )
        for project in projects:
            result = focus.projects[project.id]
            project.derived.focus_score = result.score
            project.derived.activity_level = result.activity_level
        stats["focus"] = focus.global_focus.current_focus_id

        # 8. Assemble
        health_scores = [project.health.score for project in projects if project.health]
        state = LabState(
            meta=Meta(
                generated_at=isoformat(now),
                system_health="degraded" if engine.failures else "operational",
            ),
            derived=GlobalDerived(
                current_focus_project_id=focus.global_focus.current_focus_id,
                tenure_start=focus.global_focus.tenure_start,
                focus_score=focus.global_focus.focus_score,
                activity_level=focus.global_focus.activity_level,
                global_health=round_half_up(sum(health_scores) / len(health_scores)) if health_scores else 0,
            ),
            projects=projects,
            timeline_index=timeline_index(events),
            timeline_events=events,
            tools=previous.tools if previous else [],
            notes=previous.notes if previous else [],
            profile=previous.profile if previous else None,
        )

        # 9. Persist
        if dry_run:
            logger.info("Dry run, snapshot not written", path=str(writer.path))
            stats["state"] = state.model_dump(mode="json")
        else:
            writer.write(state)
            stats["path"] = str(writer.path)

        stats["success"] = True

    except Exception as e:
        logger.exception("Refresh pipeline failed")
        stats["error"] = str(e)

    return stats
