"""
HTTP tests for the auth, user, task and project routes.

The auth service runs against the in-memory user repository; CRUD routes get
a mocked AsyncSession.
"""
import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError

from taskhub.api.deps import get_auth_service, get_current_user
from taskhub.core.database import get_db
from taskhub.main import app
from taskhub.models.project import Project
from taskhub.models.task import Task, TaskPriority, TaskStatus
from taskhub.models.user import User, UserRole

CREATED_AT = datetime(2026, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def override_auth(auth_service):
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    yield auth_service
    app.dependency_overrides.clear()


@pytest.fixture
def current_user() -> User:
    return User(
        id=uuid.uuid4(),
        name="Ann",
        email="ann@x.com",
        password_hash="$2b$04$abcdefghijklmnopqrstuuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0",
        is_email_verified=True,
        role=UserRole.USER,
    )


@pytest.fixture
def override_db(mock_db, current_user):
    async def _refresh(obj):
        if getattr(obj, "id", None) is None:
            obj.id = uuid.uuid4()
        if getattr(obj, "created_at", None) is None:
            obj.created_at = CREATED_AT
        obj.updated_at = CREATED_AT

    async def _get_db():
        yield mock_db

    mock_db.refresh.side_effect = _refresh
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: current_user
    yield mock_db
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_root_endpoint_basic_response():
    async with _client() as client:
        resp = await client.get("/")
    assert resp.status_code == 200
    body = resp.json()
    assert body.get("message") == "TaskHub API"
    assert body.get("status") == "operational"


class TestAuthRoutes:

    @pytest.mark.asyncio
    async def test_register(self, override_auth, sample_registration):
        async with _client() as client:
            resp = await client.post("/api/users/register", json=sample_registration)

        assert resp.status_code == 201
        body = resp.json()
        assert body["email"] == "ann@x.com"
        assert body["is_email_verified"] is False
        assert "password" not in body
        assert "password_hash" not in body
        assert "email_verification_token" not in body

    @pytest.mark.asyncio
    async def test_register_duplicate(self, override_auth, sample_registration):
        async with _client() as client:
            await client.post("/api/users/register", json=sample_registration)
            resp = await client.post("/api/users/register", json=sample_registration)

        assert resp.status_code == 409
        assert resp.json() == {
            "error": "DUPLICATE_EMAIL",
            "message": "User already exists with this email",
        }

    @pytest.mark.asyncio
    async def test_login_sets_cookie(self, override_auth, sample_registration):
        async with _client() as client:
            await client.post("/api/users/register", json=sample_registration)
            resp = await client.post(
                "/api/users/login",
                json={"email": "ann@x.com", "password": "Secr3t!@"},
            )

        assert resp.status_code == 200
        body = resp.json()
        assert body["token"]
        assert body["user"]["email"] == "ann@x.com"
        set_cookie = resp.headers["set-cookie"]
        assert f"authToken={body['token']}" in set_cookie
        assert "HttpOnly" in set_cookie

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, override_auth, sample_registration):
        async with _client() as client:
            await client.post("/api/users/register", json=sample_registration)
            resp = await client.post(
                "/api/users/login",
                json={"email": "ann@x.com", "password": "wrong"},
            )

        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_verify_email_link(self, override_auth, user_repository, sample_registration):
        async with _client() as client:
            await client.post("/api/users/register", json=sample_registration)
            token = (await user_repository.find_by_email("ann@x.com")).email_verification_token

            first = await client.get("/api/users/verify-email", params={"token": token})
            second = await client.get("/api/users/verify-email", params={"token": token})

        assert first.status_code == 200
        assert first.json() == {"success": True, "message": "Email verified successfully"}
        assert second.json() == {"success": False, "message": "Email already verified"}

    @pytest.mark.asyncio
    async def test_verify_email_bad_token(self, override_auth):
        async with _client() as client:
            resp = await client.get("/api/users/verify-email", params={"token": "garbage"})

        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_me_requires_token(self, override_auth):
        async with _client() as client:
            resp = await client.get("/api/users/me")

        assert resp.status_code == 401
        assert resp.json()["message"] == "Access token required"

    @pytest.mark.asyncio
    async def test_me_rejects_bad_token(self, override_auth):
        async with _client() as client:
            resp = await client.get("/api/users/me", headers=_bearer("garbage"))

        assert resp.status_code == 403
        assert resp.json()["message"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_me_with_cookie(self, override_auth):
        await override_auth.register("Ann", "ann@x.com", "Secr3t!@")
        login = await override_auth.login("ann@x.com", "Secr3t!@")

        async with _client() as client:
            resp = await client.get("/api/users/me", headers={"Cookie": f"authToken={login.token}"})

        assert resp.status_code == 200
        assert resp.json()["email"] == "ann@x.com"
        assert "X-New-Token" not in resp.headers

    @pytest.mark.asyncio
    async def test_sliding_refresh_on_protected_request(self, override_auth, clock):
        await override_auth.register("Ann", "ann@x.com", "Secr3t!@")
        login = await override_auth.login("ann@x.com", "Secr3t!@")
        clock.advance(hours=23, minutes=30)

        async with _client() as client:
            resp = await client.get("/api/users/me", headers=_bearer(login.token))

        assert resp.status_code == 200
        new_token = resp.headers["X-New-Token"]
        assert new_token != login.token
        assert f"authToken={new_token}" in resp.headers["set-cookie"]

        validity = await override_auth.check_token_validity(new_token)
        assert validity.time_remaining == 24 * 60 * 60 * 1000

    @pytest.mark.asyncio
    async def test_token_status(self, override_auth, clock):
        await override_auth.register("Ann", "ann@x.com", "Secr3t!@")
        login = await override_auth.login("ann@x.com", "Secr3t!@")
        clock.advance(hours=12)

        async with _client() as client:
            resp = await client.get("/api/users/token-status", headers=_bearer(login.token))
            missing = await client.get("/api/users/token-status")

        assert resp.json()["is_valid"] is True
        assert resp.json()["time_remaining"] == 12 * 60 * 60 * 1000
        assert missing.json()["is_valid"] is False

    @pytest.mark.asyncio
    async def test_refresh_token_outside_window(self, override_auth, clock):
        await override_auth.register("Ann", "ann@x.com", "Secr3t!@")
        login = await override_auth.login("ann@x.com", "Secr3t!@")
        clock.advance(hours=2)

        async with _client() as client:
            resp = await client.post("/api/users/refresh-token", headers=_bearer(login.token))

        assert resp.status_code == 200
        assert resp.json() == {"new_token": None, "message": "Token is still valid, no refresh needed"}
        assert "X-New-Token" not in resp.headers

    @pytest.mark.asyncio
    async def test_refresh_token_expired(self, override_auth, clock):
        await override_auth.register("Ann", "ann@x.com", "Secr3t!@")
        login = await override_auth.login("ann@x.com", "Secr3t!@")
        clock.advance(hours=25)

        async with _client() as client:
            resp = await client.post("/api/users/refresh-token", headers=_bearer(login.token))

        assert resp.status_code == 401
        assert resp.json()["error"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_logout_clears_cookie(self):
        async with _client() as client:
            resp = await client.post("/api/users/logout")

        assert resp.status_code == 200
        assert "authToken=" in resp.headers["set-cookie"]


class TestTaskRoutes:

    @pytest.mark.asyncio
    async def test_create_task_defaults(self, override_db):
        async with _client() as client:
            resp = await client.post("/api/tasks", json={"title": "Write docs"})

        assert resp.status_code == 201
        body = resp.json()
        assert body["title"] == "Write docs"
        assert body["priority"] == "high"
        assert body["status"] == "todo"
        assert body["is_archive"] is False
        override_db.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_task_keeps_unsent_fields(self, override_db):
        task = Task(
            id=uuid.uuid4(),
            title="Write docs",
            description="API reference",
            priority=TaskPriority.LOW,
            status=TaskStatus.TODO,
            is_archive=False,
            created_at=CREATED_AT,
        )
        override_db.get.return_value = task

        async with _client() as client:
            resp = await client.put(f"/api/tasks/{task.id}", json={"status": "inprogress"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "inprogress"
        assert body["title"] == "Write docs"
        assert body["description"] == "API reference"
        assert body["priority"] == "low"

    @pytest.mark.asyncio
    async def test_get_missing_task(self, override_db):
        override_db.get.return_value = None

        async with _client() as client:
            resp = await client.get(f"/api/tasks/{uuid.uuid4()}")

        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_update_task_rejects_null_for_required_fields(self, override_db):
        task = Task(
            id=uuid.uuid4(),
            title="Write docs",
            priority=TaskPriority.LOW,
            status=TaskStatus.TODO,
            is_archive=False,
        )
        override_db.get.return_value = task

        async with _client() as client:
            resp = await client.put(f"/api/tasks/{task.id}", json={"title": None, "priority": None})

        assert resp.status_code == 422
        assert task.title == "Write docs"
        assert task.priority == TaskPriority.LOW
        override_db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_task_allows_clearing_optional_fields(self, override_db):
        task = Task(
            id=uuid.uuid4(),
            title="Write docs",
            description="API reference",
            priority=TaskPriority.LOW,
            status=TaskStatus.TODO,
            is_archive=False,
        )
        override_db.get.return_value = task

        async with _client() as client:
            resp = await client.put(f"/api/tasks/{task.id}", json={"description": None})

        assert resp.status_code == 200
        assert resp.json()["description"] is None

    @pytest.mark.asyncio
    async def test_delete_task(self, override_db):
        task = Task(id=uuid.uuid4(), title="Old", priority=TaskPriority.HIGH, status=TaskStatus.DONE, is_archive=True)
        override_db.get.return_value = task

        async with _client() as client:
            resp = await client.delete(f"/api/tasks/{task.id}")

        assert resp.status_code == 200
        override_db.delete.assert_awaited_once_with(task)

    @pytest.mark.asyncio
    async def test_tasks_require_auth(self):
        async with _client() as client:
            resp = await client.get("/api/tasks")

        assert resp.status_code == 401


class TestProjectRoutes:

    @pytest.mark.asyncio
    async def test_create_project(self, override_db, current_user):
        async with _client() as client:
            resp = await client.post(
                "/api/projects",
                json={"name": "Launch", "members": [str(current_user.id)]},
            )

        assert resp.status_code == 201
        assert resp.json()["members"] == [str(current_user.id)]

    @pytest.mark.asyncio
    async def test_update_project_partial(self, override_db):
        project = Project(id=uuid.uuid4(), name="Launch", description="Q1", members=["a"], tasks=["t1"])
        override_db.get.return_value = project

        async with _client() as client:
            resp = await client.put(f"/api/projects/{project.id}", json={"tasks": ["t1", "t2"]})

        body = resp.json()
        assert resp.status_code == 200
        assert body["tasks"] == ["t1", "t2"]
        assert body["name"] == "Launch"
        assert body["members"] == ["a"]

    @pytest.mark.asyncio
    async def test_list_projects(self, override_db):
        project = Project(id=uuid.uuid4(), name="Launch")
        result = MagicMock()
        result.scalars.return_value.all.return_value = [project]
        override_db.execute.return_value = result

        async with _client() as client:
            resp = await client.get("/api/projects")

        assert resp.status_code == 200
        assert [p["name"] for p in resp.json()] == ["Launch"]

    @pytest.mark.asyncio
    async def test_update_project_rejects_null_name(self, override_db):
        project = Project(id=uuid.uuid4(), name="Launch")
        override_db.get.return_value = project

        async with _client() as client:
            resp = await client.put(f"/api/projects/{project.id}", json={"name": None})

        assert resp.status_code == 422
        assert project.name == "Launch"

    @pytest.mark.asyncio
    async def test_project_members(self, override_db):
        project = Project(id=uuid.uuid4(), name="Launch", members=["u1", "u2"], tasks=["t1"])
        override_db.get.return_value = project

        async with _client() as client:
            resp = await client.get(f"/api/projects/{project.id}/members")

        assert resp.status_code == 200
        assert resp.json() == {"members": ["u1", "u2"]}

    @pytest.mark.asyncio
    async def test_project_tasks(self, override_db):
        project = Project(id=uuid.uuid4(), name="Launch", members=["u1"], tasks=["t1", "t2"])
        override_db.get.return_value = project

        async with _client() as client:
            resp = await client.get(f"/api/projects/{project.id}/tasks")

        assert resp.status_code == 200
        assert resp.json() == {"tasks": ["t1", "t2"]}

    @pytest.mark.asyncio
    async def test_project_without_members_returns_empty_list(self, override_db):
        project = Project(id=uuid.uuid4(), name="Launch")
        override_db.get.return_value = project

        async with _client() as client:
            resp = await client.get(f"/api/projects/{project.id}/members")

        assert resp.json() == {"members": []}

    @pytest.mark.asyncio
    async def test_members_and_tasks_of_missing_project(self, override_db):
        override_db.get.return_value = None
        project_id = uuid.uuid4()

        async with _client() as client:
            members = await client.get(f"/api/projects/{project_id}/members")
            tasks = await client.get(f"/api/projects/{project_id}/tasks")

        assert members.status_code == 404
        assert tasks.status_code == 404


class TestUserRoutes:

    @pytest.mark.asyncio
    async def test_update_user_password_not_echoed(self, override_db, current_user):
        override_db.get.return_value = current_user

        async with _client() as client:
            resp = await client.put(
                f"/api/users/{current_user.id}",
                json={"name": "Ann B", "password": "N3wSecret!"},
            )

        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Ann B"
        assert "password_hash" not in body
        assert current_user.password_hash == "N3wSecret!"  # hashed by the mapper hook on a real flush

    @pytest.mark.asyncio
    async def test_delete_user_requires_admin(self, override_db, current_user):
        async with _client() as client:
            resp = await client.delete(f"/api/users/{current_user.id}")

        assert resp.status_code == 403
        assert resp.json() == {"error": "ADMIN_REQUIRED", "message": "Admin access required"}
        override_db.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_admin_cannot_promote_self(self, override_db, current_user):
        override_db.get.return_value = current_user

        async with _client() as client:
            resp = await client.put(f"/api/users/{current_user.id}", json={"role": "admin"})

        assert resp.status_code == 403
        assert resp.json()["error"] == "ADMIN_REQUIRED"
        assert current_user.role == UserRole.USER
        override_db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_admin_cannot_create_admin(self, override_db):
        async with _client() as client:
            resp = await client.post(
                "/api/users",
                json={"name": "Bob", "email": "bob@x.com", "password": "Secr3t!@", "role": "admin"},
            )

        assert resp.status_code == 403
        override_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_admin_can_change_role(self, override_db, current_user):
        current_user.role = UserRole.ADMIN
        other = User(
            id=uuid.uuid4(),
            name="Bob",
            email="bob@x.com",
            password_hash=current_user.password_hash,
            is_email_verified=True,
            role=UserRole.USER,
        )
        override_db.get.return_value = other

        async with _client() as client:
            resp = await client.put(f"/api/users/{other.id}", json={"role": "admin"})

        assert resp.status_code == 200
        assert resp.json()["role"] == "admin"

    @pytest.mark.asyncio
    async def test_null_email_rejected(self, override_db, current_user):
        override_db.get.return_value = current_user

        async with _client() as client:
            resp = await client.put(f"/api/users/{current_user.id}", json={"email": None, "name": None})

        assert resp.status_code == 422
        assert current_user.email == "ann@x.com"
        assert current_user.name == "Ann"

    @pytest.mark.asyncio
    async def test_non_unique_integrity_error_is_not_a_duplicate(self, override_db, current_user):
        override_db.get.return_value = current_user
        override_db.flush.side_effect = IntegrityError(
            "UPDATE users", {}, Exception('null value in column "team_id" violates not-null constraint')
        )

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.put(f"/api/users/{current_user.id}", json={"name": "Ann B"})

        assert resp.status_code == 500

    @pytest.mark.asyncio
    async def test_create_user_duplicate(self, override_db, current_user):
        result = MagicMock()
        result.scalar_one_or_none.return_value = current_user
        override_db.execute.return_value = result

        async with _client() as client:
            resp = await client.post(
                "/api/users",
                json={"name": "Ann", "email": "ann@x.com", "password": "Secr3t!@"},
            )

        assert resp.status_code == 409
