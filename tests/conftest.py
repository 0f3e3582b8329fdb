import os
from typing import Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# FORCE TESTING MODE
# This must be done BEFORE importing app.main so that config.py and
# database.py see an in-memory SQLite database and no Redis.
# ------------------------------------------------------------------
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_TOKEN_SECRET"] = "test-admin-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ.pop("REDIS_URL", None)

from app.main import app
from app.core.database import AsyncSessionLocal, engine, init_db
from app.core.security import hash_password
from app.core.seeding_logic import seed_master_department, seed_role_definitions
from app.core.session_store import MemorySessionStore
from app.models.department import Department
from app.models.enums import PrincipalKind
from app.services.auth_service import create_user
from app.services.department_service import create_department
from app.services.membership_service import add_membership, ensure_principal

DEFAULT_PASSWORD = "Login-pass1"
ESCALATION_PASSWORD = "Escalate-Pass9"


# ------------------------------------------------------------------
# DATABASE: fresh in-memory schema per test
# ------------------------------------------------------------------
@pytest_asyncio.fixture
async def database():
    await init_db()
    yield
    # StaticPool holds the only connection; disposing it drops the database
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(db_session):
    """Seeded role catalog (the one the app serves)."""
    await seed_master_department(db_session)
    await seed_role_definitions(db_session)
    await db_session.commit()

    role_catalog = app.state.role_catalog
    await role_catalog.reload(db_session)
    return role_catalog


@pytest.fixture
def store():
    app.state.session_store = MemorySessionStore()
    return app.state.session_store


@pytest_asyncio.fixture
async def client(catalog, store):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


# ------------------------------------------------------------------
# FACTORIES
# ------------------------------------------------------------------
@pytest_asyncio.fixture
async def make_department(db_session):
    async def _make(name: str, parent: Optional[Department] = None, **fields) -> Department:
        return await create_department(
            db_session,
            name=name,
            parent_id=parent.id if parent else None,
            **fields,
        )
    return _make


@pytest_asyncio.fixture
async def make_user(db_session, catalog):
    """
    memberships: dicts of {"kind", "department_id", "roles", "is_primary"?, "is_active"?}.
    A principal record is created for every kind that appears.
    """
    async def _make(
        email: str,
        memberships: List[Dict] = (),
        password: str = DEFAULT_PASSWORD,
        escalation_password: Optional[str] = ESCALATION_PASSWORD,
        is_active: bool = True,
    ):
        user = await create_user(
            db_session,
            email=email,
            password=password,
            first_name="Test",
            last_name=email.split("@")[0],
            is_active=is_active,
        )
        for membership in memberships:
            kind = membership["kind"]
            extra = {}
            if kind == PrincipalKind.GlobalAdmin and escalation_password:
                extra["escalation_password_hash"] = hash_password(escalation_password)
            await ensure_principal(db_session, user.id, kind, **extra)
            await add_membership(
                db_session,
                catalog,
                user.id,
                kind,
                membership["department_id"],
                membership["roles"],
                is_primary=membership.get("is_primary", False),
                is_active=membership.get("is_active", True),
            )
        return user
    return _make


@pytest_asyncio.fixture
async def login(client):
    async def _login(email: str, password: str = DEFAULT_PASSWORD) -> dict:
        res = await client.post("/auth/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        return res.json()
    return _login


@pytest.fixture
def bearer():
    def _headers(body: dict) -> dict:
        return {"Authorization": f"Bearer {body['session']['access_token']}"}
    return _headers


# ------------------------------------------------------------------
# IN-MEMORY DEPARTMENT TREE (resolver tests without a database)
# ------------------------------------------------------------------
class InMemoryDepartmentStore:
    def __init__(self, departments: List[Department]):
        self.departments = {d.id: d for d in departments}

    async def get_department(self, department_id: int) -> Optional[Department]:
        return self.departments.get(department_id)

    async def get_parent(self, department_id: int) -> Optional[Department]:
        department = self.departments.get(department_id)
        if department is None or department.parent_id is None:
            return None
        return self.departments.get(department.parent_id)

    async def list_children(self, department_id: int) -> List[Department]:
        children = [d for d in self.departments.values() if d.parent_id == department_id]
        return sorted(children, key=lambda d: (d.name, d.id))


@pytest.fixture
def tree():
    def _tree(*departments: Department) -> InMemoryDepartmentStore:
        return InMemoryDepartmentStore(list(departments))
    return _tree
