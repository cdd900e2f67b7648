import pytest
from sqlalchemy.orm import Session
from datetime import datetime, timedelta, timezone
from teamspace.crud.project import (
    bulk_delete_projects,
    create_project,
    delete_project,
    get_project,
    get_projects,
    recalculate_project_counters,
    update_project,
)
from teamspace.crud.team import create_team
from teamspace.crud.task import create_task
from teamspace.models.activity import ActivityRecord
from teamspace.models.project import Project as ProjectModel
from teamspace.models.task import Task, Subtask
from teamspace.core.exceptions import (
    NotAuthenticatedError,
    PermissionDeniedError,
    ProjectNotFound,
    ProjectValidationError,
)


@pytest.fixture
def basic_project_data():
    return {
        "name": "Test Project",
        "description": "A test project description",
        "start_date": datetime.now(timezone.utc),
        "end_date": datetime.now(timezone.utc) + timedelta(days=30),
        "priority": "high",
        "tags": ["test", "pytest"],
    }


def test_create_project_success(db: Session, test_user, basic_project_data: dict):
    project = create_project(db, basic_project_data, test_user)

    assert project.id is not None
    assert project.company_id == test_user.company_id
    assert project.status == "planned"
    assert (project.total_tasks, project.completed_tasks, project.progress) == (0, 0, 0)
    assert project.created_by == test_user.id
    assert db.query(ActivityRecord).filter_by(action_type="Created Project", target_id=str(project.id)).count() == 1


def test_create_project_requires_actor(db: Session, basic_project_data: dict):
    with pytest.raises(NotAuthenticatedError):
        create_project(db, basic_project_data, None)


@pytest.mark.parametrize("override", [
    {"name": "  "},
    {"status": "archived"},
    {"priority": "urgent"},
    {"start_date": None},
])
def test_create_project_validation(db: Session, test_user, basic_project_data: dict, override: dict):
    with pytest.raises(ProjectValidationError):
        create_project(db, {**basic_project_data, **override}, test_user)


def test_create_project_end_before_start(db: Session, test_user, basic_project_data: dict):
    data = {**basic_project_data, "end_date": basic_project_data["start_date"] - timedelta(days=1)}
    with pytest.raises(ProjectValidationError):
        create_project(db, data, test_user)


def test_create_project_in_foreign_company_denied(db: Session, test_user, outsider, basic_project_data: dict):
    with pytest.raises(PermissionDeniedError):
        create_project(db, {**basic_project_data, "company_id": outsider.company_id}, test_user)


def test_create_project_with_team_and_parent(db: Session, test_user, basic_project_data: dict):
    team = create_team(db, {"name": "Core"}, test_user)
    parent = create_project(db, basic_project_data, test_user)
    child = create_project(db, {**basic_project_data, "name": "Child", "team_id": team.id, "parent_id": parent.id}, test_user)
    assert child.team_id == team.id
    assert child.parent_id == parent.id


def test_get_project_not_found(db: Session):
    with pytest.raises(ProjectNotFound):
        get_project(db, 999999)


def test_get_projects_scoped_to_company(db: Session, test_user, outsider, test_superuser, basic_project_data: dict):
    mine = create_project(db, basic_project_data, test_user)
    theirs = create_project(db, {**basic_project_data, "name": "Other"}, outsider)

    assert [p.id for p in get_projects(db, test_user)] == [mine.id]
    assert {p.id for p in get_projects(db, test_superuser)} >= {mine.id, theirs.id}
    assert [p.id for p in get_projects(db, test_user, {"search": "test"})] == [mine.id]
    assert get_projects(db, test_user, {"status": "completed"}) == []


def test_update_project_fields(db: Session, test_user, basic_project_data: dict):
    project = create_project(db, basic_project_data, test_user)

    updated = update_project(db, project.id, {"name": "Renamed", "status": "completed"}, test_user)

    assert updated.name == "Renamed"
    assert updated.completed_at is not None
    assert updated.updated_by == test_user.id
    record = db.query(ActivityRecord).filter_by(action_type="Updated Project").one()
    assert record.meta["changes"]["name"] == ["Test Project", "Renamed"]


def test_update_project_ignores_counters(db: Session, test_user, basic_project_data: dict):
    project = create_project(db, basic_project_data, test_user)
    update_project(db, project.id, {"total_tasks": 10, "progress": 90}, test_user)
    db.refresh(project)
    assert (project.total_tasks, project.progress) == (0, 0)


def test_update_project_other_company_denied(db: Session, test_user, outsider, basic_project_data: dict):
    project = create_project(db, basic_project_data, test_user)
    with pytest.raises(PermissionDeniedError):
        update_project(db, project.id, {"name": "Mine now"}, outsider)


def test_update_project_cannot_parent_itself(db: Session, test_user, basic_project_data: dict):
    project = create_project(db, basic_project_data, test_user)
    with pytest.raises(ProjectValidationError):
        update_project(db, project.id, {"parent_id": project.id}, test_user)


def test_delete_project_cascades_tasks(db: Session, test_user, basic_project_data: dict):
    project = create_project(db, basic_project_data, test_user)
    child = create_project(db, {**basic_project_data, "name": "Child", "parent_id": project.id}, test_user)
    create_task(db, {"project_id": project.id, "name": "T", "subtasks": [{"label": "a"}]}, test_user)
    project_id = project.id

    assert delete_project(db, project_id, test_user) is True

    assert db.get(ProjectModel, project_id) is None
    assert db.query(Task).filter(Task.project_id == project_id).count() == 0
    assert db.query(Subtask).count() == 0
    db.refresh(child)
    assert child.parent_id is None


def test_bulk_delete_projects(db: Session, test_user, outsider, basic_project_data: dict):
    first = create_project(db, basic_project_data, test_user)
    foreign = create_project(db, {**basic_project_data, "name": "Foreign"}, outsider)

    result = bulk_delete_projects(db, [first.id, foreign.id, 999999], test_user)

    assert result["success"] is True
    assert result["processed_count"] == 1
    assert {e["id"] for e in result["errors"]} == {foreign.id, 999999}
    assert db.get(ProjectModel, foreign.id) is not None


def test_recalculate_project_counters(db: Session, test_user, basic_project_data: dict):
    project = create_project(db, basic_project_data, test_user)
    for status in ("completed", "todo", "todo"):
        create_task(db, {"project_id": project.id, "name": status, "status": status, "subtasks": [{"label": "a"}]}, test_user)
    project.total_tasks = 99
    project.completed_tasks = 0
    db.commit()

    fixed = recalculate_project_counters(db, project.id, test_user)

    assert (fixed.total_tasks, fixed.completed_tasks, fixed.progress) == (3, 1, 33)
