import pytest

from app.api.deps import require_access_right
from app.core.exceptions import InsufficientAccessRight
from app.models.enums import PrincipalKind
from app.models.user import User
from app.schemas.auth import AuthContext


def staff_in(department, *roles):
    return {"kind": PrincipalKind.Staff, "department_id": department.id, "roles": list(roles)}


@pytest.mark.asyncio
async def test_root_health(client):
    res = await client.get("/")

    assert res.status_code == 200
    assert res.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_roles_me_returns_session_view(client, make_user, make_department, login, bearer):
    dept = await make_department("Engineering")
    await make_user("staff@example.com", [staff_in(dept, "instructor")])
    headers = bearer(await login("staff@example.com"))

    res = await client.get("/roles/me", headers=headers)

    assert res.status_code == 200
    view = res.json()
    assert view["user_types"] == ["staff"]
    assert view["department_memberships"][0]["roles"] == ["instructor"]
    assert "grades:own-classes:manage" in view["all_access_rights"]


@pytest.mark.asyncio
async def test_roles_me_department_inherited(client, make_user, make_department, login, bearer):
    faculty = await make_department("Faculty")
    school = await make_department("School", parent=faculty)
    lab = await make_department("Lab", parent=school)
    await make_user("staff@example.com", [staff_in(faculty, "instructor", "content-admin")])
    headers = bearer(await login("staff@example.com"))

    res = await client.get(f"/roles/me/department/{lab.id}", headers=headers)

    assert res.status_code == 200
    view = res.json()
    assert view["is_direct_member"] is False
    assert view["inherited_from"] == faculty.id
    assert view["roles"] == ["instructor", "content-admin"]
    assert "content:lessons:manage" in view["access_rights"]


@pytest.mark.asyncio
async def test_roles_me_department_does_not_change_selection(client, make_user, make_department, login, bearer):
    faculty = await make_department("Faculty")
    school = await make_department("School", parent=faculty)
    await make_user("staff@example.com", [staff_in(faculty, "instructor")])
    body = await login("staff@example.com")

    await client.get(f"/roles/me/department/{school.id}", headers=bearer(body))
    me = await client.get("/auth/me", headers=bearer(body))

    assert me.json()["user"]["last_selected_department_id"] == faculty.id


@pytest.mark.asyncio
async def test_roles_me_department_not_a_member(client, make_user, make_department, login, bearer):
    mine = await make_department("Mine")
    theirs = await make_department("Theirs")
    await make_user("staff@example.com", [staff_in(mine, "instructor")])
    headers = bearer(await login("staff@example.com"))

    res = await client.get(f"/roles/me/department/{theirs.id}", headers=headers)

    assert res.status_code == 403
    assert res.json()["detail"]["code"] == "NOT_A_MEMBER"


@pytest.mark.asyncio
async def test_master_department_hidden_from_non_admins(client, make_user, make_department, login, bearer):
    dept = await make_department("Engineering")
    await make_user("staff@example.com", [staff_in(dept, "instructor")])
    headers = bearer(await login("staff@example.com"))

    res = await client.get("/roles/me/department/1", headers=headers)

    assert res.status_code == 404


@pytest.mark.asyncio
async def test_role_catalog_listing(client, make_user, login, bearer):
    await make_user("someone@example.com")
    headers = bearer(await login("someone@example.com"))

    res = await client.get("/roles", headers=headers)

    assert res.status_code == 200
    names = {r["name"] for r in res.json()}
    assert {"course-taker", "instructor", "system-admin"} <= names
    kinds = {r["name"]: r["principal_kind"] for r in res.json()}
    assert kinds["financial-admin"] == "global-admin"


@pytest.mark.asyncio
async def test_role_catalog_listing_requires_auth(client):
    assert (await client.get("/roles")).status_code == 401


# ------------------------------------------------------------------
# require_access_right dependency
# ------------------------------------------------------------------
def _context(*rights):
    user = User(email="x@example.com", first_name="X", password_hash="x")
    return AuthContext(user=user, session_id="sid", claims={"access_rights": list(rights)})


@pytest.mark.asyncio
async def test_require_access_right_accepts_wildcards():
    checker = require_access_right("content:courses:read", "content:lessons:read")

    context = _context("content:*")
    assert await checker(context=context) is context


@pytest.mark.asyncio
async def test_require_access_right_rejects_missing_right():
    checker = require_access_right("billing:refunds:manage")

    with pytest.raises(InsufficientAccessRight):
        await checker(context=_context("billing:payments:read"))
