"""Clockify project cache and project-to-goal mappings."""

import logging
import uuid
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lifesync.config import settings
from lifesync.connectors.base import ExternalProject, TimeTrackingConnector
from lifesync.exceptions import LifeSyncError, MappingExistsError, NotFoundError
from lifesync.models.connection import ClockifyConnection
from lifesync.models.goal import Goal
from lifesync.models.mapping import ProjectGoalMapping
from lifesync.models.project import ClockifyProject
from lifesync.models.user import User
from lifesync.utils.time_utils import utcnow

log = logging.getLogger(__name__)


def upsert_cached_project(db: Session, connection: ClockifyConnection, project: ExternalProject) -> ClockifyProject:
    """Insert or refresh one cache row keyed on (connection, Clockify project id). Does not commit."""
    cached = db.query(ClockifyProject).filter(
        ClockifyProject.connection_id == connection.id,
        ClockifyProject.clockify_project_id == project.id,
    ).first()
    if cached is None:
        cached = ClockifyProject(connection_id=connection.id, clockify_project_id=project.id)
        db.add(cached)
    cached.name = project.name
    cached.client_name = project.client_name
    cached.color = project.color
    cached.is_archived = project.archived
    cached.fetched_at = utcnow()
    return cached


async def cache_projects(db: Session, client: TimeTrackingConnector, connection: ClockifyConnection) -> int:
    """Refresh the cache with the workspace's active projects. Returns the number of projects seen."""
    projects = await client.get_projects(connection.workspace_id, include_archived=False)
    for project in projects:
        upsert_cached_project(db, connection, project)
    db.commit()
    log.info(f"Cached {len(projects)} Clockify projects for connection {connection.id}")
    return len(projects)


def build_project_lookups(
    db: Session, connection: ClockifyConnection
) -> Tuple[Dict[str, uuid.UUID], Dict[str, uuid.UUID]]:
    """
    Returns two lookups keyed by Clockify project id:
    - project -> goal id, from the user's active mappings
    - project -> cache row id, from this connection's cache
    """
    project_to_goal: Dict[str, uuid.UUID] = {}
    rows = db.query(ProjectGoalMapping.goal_id, ClockifyProject.clockify_project_id).join(
        ClockifyProject, ProjectGoalMapping.clockify_project_id == ClockifyProject.id
    ).filter(
        ProjectGoalMapping.user_id == connection.user_id,
        ProjectGoalMapping.is_active == True,
    ).order_by(ProjectGoalMapping.created_at).all()
    for goal_id, clockify_project_id in rows:
        # First mapping wins when a project is mapped to several goals
        project_to_goal.setdefault(clockify_project_id, goal_id)

    project_to_row: Dict[str, uuid.UUID] = {
        clockify_project_id: row_id
        for row_id, clockify_project_id in db.query(ClockifyProject.id, ClockifyProject.clockify_project_id).filter(
            ClockifyProject.connection_id == connection.id
        )
    }
    return project_to_goal, project_to_row


def _active_mapping_for_goal(db: Session, user_id, goal_id) -> Optional[ProjectGoalMapping]:
    return db.query(ProjectGoalMapping).filter(
        ProjectGoalMapping.user_id == user_id,
        ProjectGoalMapping.goal_id == goal_id,
        ProjectGoalMapping.is_active == True,
    ).order_by(ProjectGoalMapping.created_at).first()


async def ensure_project_for_goal(
    db: Session, client: TimeTrackingConnector, connection: ClockifyConnection, goal: Goal
) -> Tuple[Optional[str], bool]:
    """
    Resolve the Clockify project a timer for ``goal`` should run under.

    Reuses an active mapping, otherwise adopts a same-name project or creates
    one, then caches it and records the mapping. Never raises: any failure
    downgrades to ``(None, False)`` so the timer starts without a project.
    Returns (Clockify project id, whether a project was created).
    """
    mapping = _active_mapping_for_goal(db, connection.user_id, goal.id)
    if mapping is not None and mapping.project is not None:
        log.debug(f"Reusing mapped project {mapping.project.clockify_project_id} for goal {goal.id}")
        return mapping.project.clockify_project_id, False

    project_created = False
    try:
        projects = await client.get_projects(connection.workspace_id, include_archived=False)
        project = next((p for p in projects if p.name == goal.name), None)
        if project is not None:
            log.info(f"Adopting existing Clockify project '{project.name}' for goal {goal.id}")
        else:
            try:
                project = await client.create_project(
                    connection.workspace_id,
                    name=goal.name,
                    color=goal.color or settings.default_project_color,
                    is_public=True,
                    billable=False,
                )
                project_created = True
            except LifeSyncError as e:
                if "already exists" in e.message.lower():
                    log.warning(f"Clockify project '{goal.name}' already exists but was not listed; starting without project")
                    return None, False
                raise
    except Exception as e:
        log.error(f"Project provisioning failed for goal {goal.id}: {e}")
        return None, False

    try:
        cached = db.query(ClockifyProject).filter(
            ClockifyProject.connection_id == connection.id,
            ClockifyProject.clockify_project_id == project.id,
        ).first()
        if cached is None:
            cached = upsert_cached_project(db, connection, project)
            db.flush()

        exists = db.query(ProjectGoalMapping).filter(
            ProjectGoalMapping.clockify_project_id == cached.id,
            ProjectGoalMapping.goal_id == goal.id,
        ).first()
        if exists is None:
            db.add(ProjectGoalMapping(
                user_id=connection.user_id,
                goal_id=goal.id,
                clockify_project_id=cached.id,
                is_active=True,
                auto_categorize=True,
            ))
        elif not exists.is_active:
            exists.is_active = True
        db.commit()
    except SQLAlchemyError as e:
        # Mapping bookkeeping is best-effort; the project itself is usable
        db.rollback()
        log.warning(f"Could not record mapping for goal {goal.id}: {e}")

    return project.id, project_created


def list_projects(db: Session, user: User, connection_id: Optional[uuid.UUID] = None) -> List[ClockifyProject]:
    query = db.query(ClockifyProject).join(
        ClockifyConnection, ClockifyProject.connection_id == ClockifyConnection.id
    ).filter(ClockifyConnection.user_id == user.id)
    if connection_id is not None:
        query = query.filter(ClockifyProject.connection_id == connection_id)
    return query.order_by(ClockifyProject.name).all()


def list_mappings(db: Session, user: User) -> List[ProjectGoalMapping]:
    return db.query(ProjectGoalMapping).filter(
        ProjectGoalMapping.user_id == user.id
    ).order_by(ProjectGoalMapping.created_at.desc()).all()


def create_mapping(
    db: Session, user: User, project_id: uuid.UUID, goal_id: uuid.UUID, auto_categorize: bool = True
) -> ProjectGoalMapping:
    """Map a cached project (by cache row id) to one of the user's goals."""
    project = db.query(ClockifyProject).join(
        ClockifyConnection, ClockifyProject.connection_id == ClockifyConnection.id
    ).filter(ClockifyProject.id == project_id, ClockifyConnection.user_id == user.id).first()
    if project is None:
        raise NotFoundError("Project not found")

    goal = db.query(Goal).filter(Goal.id == goal_id, Goal.user_id == user.id).first()
    if goal is None:
        raise NotFoundError("Goal not found")

    mapping = ProjectGoalMapping(
        user_id=user.id,
        goal_id=goal.id,
        clockify_project_id=project.id,
        is_active=True,
        auto_categorize=auto_categorize,
    )
    db.add(mapping)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise MappingExistsError("Mapping already exists for this project and goal")
    db.refresh(mapping)
    log.info(f"Mapped Clockify project {project.clockify_project_id} to goal {goal.id}")
    return mapping


def delete_mapping(db: Session, user: User, mapping_id: uuid.UUID) -> None:
    mapping = db.query(ProjectGoalMapping).filter(
        ProjectGoalMapping.id == mapping_id, ProjectGoalMapping.user_id == user.id
    ).first()
    if mapping is None:
        raise NotFoundError("Mapping not found")
    db.delete(mapping)
    db.commit()
