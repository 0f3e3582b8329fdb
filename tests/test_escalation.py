from datetime import timedelta
from unittest.mock import patch

import pytest

from app.core.exceptions import AdminSessionStale, AdminTokenRequired
from app.core.security import create_admin_token, new_token_id
from app.models.enums import PrincipalKind
from app.schemas.auth import AuthContext
from app.services.escalation_service import EscalationManager

ESCALATION_PASSWORD = "Escalate-Pass9"
MASTER = 1


def admin_in_master(*roles):
    return {"kind": PrincipalKind.GlobalAdmin, "department_id": MASTER, "roles": list(roles)}


def error_code(res):
    return res.json()["detail"]["code"]


@pytest.fixture
def escalate(client, bearer):
    async def _escalate(body: dict, password: str = ESCALATION_PASSWORD):
        return await client.post(
            "/auth/escalate", json={"escalation_password": password}, headers=bearer(body)
        )
    return _escalate


def admin_headers(body: dict, admin_token: str) -> dict:
    return {
        "Authorization": f"Bearer {body['session']['access_token']}",
        "X-Admin-Token": admin_token,
    }


# ------------------------------------------------------------------
# Escalate -> admin action -> de-escalate -> stale token
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_escalate_use_deescalate_then_token_is_stale(client, make_user, login, bearer, escalate):
    await make_user("admin@example.com", [admin_in_master("system-admin")])
    body = await login("admin@example.com")
    assert body["view"]["can_escalate_to_admin"] is True

    res = await escalate(body)
    assert res.status_code == 200
    admin = res.json()
    assert admin["admin_roles"] == ["system-admin"]
    assert "system:*" in admin["admin_access_rights"]
    assert admin["expires_in"] == 15 * 60

    reload = await client.post("/roles/reload", headers=admin_headers(body, admin["admin_token"]))
    assert reload.status_code == 200
    assert reload.json()["role_count"] > 0

    assert (await client.post("/auth/deescalate", headers=bearer(body))).status_code == 200

    stale = await client.post("/roles/reload", headers=admin_headers(body, admin["admin_token"]))
    assert stale.status_code == 401
    assert error_code(stale) == "ADMIN_SESSION_STALE"


@pytest.mark.asyncio
async def test_deescalate_is_idempotent(client, make_user, login, bearer):
    await make_user("admin@example.com", [admin_in_master("system-admin")])
    body = await login("admin@example.com")

    first = await client.post("/auth/deescalate", headers=bearer(body))
    second = await client.post("/auth/deescalate", headers=bearer(body))

    assert first.status_code == 200
    assert second.status_code == 200


@pytest.mark.asyncio
async def test_me_reports_admin_session(client, make_user, login, bearer, escalate):
    await make_user("admin@example.com", [admin_in_master("system-admin")])
    body = await login("admin@example.com")

    before = (await client.get("/auth/me", headers=bearer(body))).json()
    await escalate(body)
    after = (await client.get("/auth/me", headers=bearer(body))).json()

    assert before["is_admin_session_active"] is False
    assert after["is_admin_session_active"] is True
    assert after["admin_session_expires_at"] is not None


# ------------------------------------------------------------------
# Failures
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_wrong_escalation_password_keeps_base_session(client, make_user, login, bearer, escalate):
    await make_user("admin@example.com", [admin_in_master("system-admin")])
    body = await login("admin@example.com")

    res = await escalate(body, password="Login-pass1")

    assert res.status_code == 401
    assert error_code(res) == "INVALID_ESCALATION_PASSWORD"
    assert (await client.get("/auth/me", headers=bearer(body))).status_code == 200


@pytest.mark.asyncio
async def test_ineligible_user_rejected_before_password_check(make_user, make_department, login, escalate):
    dept = await make_department("Engineering")
    await make_user("staff@example.com", [
        {"kind": PrincipalKind.Staff, "department_id": dept.id, "roles": ["department-admin"]},
    ])
    body = await login("staff@example.com")
    assert body["view"]["can_escalate_to_admin"] is False

    with patch("app.services.escalation_service.verify_password") as verify:
        res = await escalate(body)

    assert res.status_code == 403
    assert error_code(res) == "ESCALATION_INELIGIBLE"
    verify.assert_not_called()


@pytest.mark.asyncio
async def test_admin_endpoint_requires_admin_token(client, make_user, login, bearer):
    await make_user("admin@example.com", [admin_in_master("system-admin")])
    body = await login("admin@example.com")

    missing = await client.post("/roles/reload", headers=bearer(body))
    garbage = await client.post("/roles/reload", headers=admin_headers(body, "not-a-token"))

    for res in (missing, garbage):
        assert res.status_code == 401
        assert error_code(res) == "ADMIN_TOKEN_REQUIRED"


@pytest.mark.asyncio
async def test_admin_endpoint_requires_base_session(client, make_user, login, escalate):
    await make_user("admin@example.com", [admin_in_master("system-admin")])
    body = await login("admin@example.com")
    admin_token = (await escalate(body)).json()["admin_token"]

    res = await client.post("/roles/reload", headers={"X-Admin-Token": admin_token})

    assert res.status_code == 401
    assert error_code(res) == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_admin_token_is_bound_to_its_session(client, make_user, login, escalate):
    await make_user("admin@example.com", [admin_in_master("system-admin")])
    first = await login("admin@example.com")
    second = await login("admin@example.com")
    admin_token = (await escalate(first)).json()["admin_token"]

    res = await client.post("/roles/reload", headers=admin_headers(second, admin_token))

    assert res.status_code == 401
    assert error_code(res) == "ADMIN_TOKEN_REQUIRED"


@pytest.mark.asyncio
async def test_insufficient_admin_role(client, make_user, login, escalate):
    await make_user("enroller@example.com", [admin_in_master("enrollment-admin")])
    body = await login("enroller@example.com")
    admin_token = (await escalate(body)).json()["admin_token"]

    res = await client.post("/roles/reload", headers=admin_headers(body, admin_token))

    assert res.status_code == 403
    assert error_code(res) == "INSUFFICIENT_ADMIN_ROLE"


# ------------------------------------------------------------------
# Token validation against the session registry
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_admin_token_rejected_once_base_session_ends(db_session, catalog, store, make_user):
    user = await make_user("admin@example.com", [admin_in_master("system-admin")])
    await store.create_session("sid-1", {"user_id": str(user.id), "refresh_jti": "r"}, 3600)
    context = AuthContext(user=user, session_id="sid-1", claims={})
    manager = EscalationManager(db_session, catalog, store)

    admin = await manager.escalate(context, ESCALATION_PASSWORD)
    assert (await manager.validate_admin_token(context, admin.admin_token))["roles"] == ["system-admin"]

    await store.revoke_session("sid-1")

    with pytest.raises(AdminSessionStale):
        await manager.validate_admin_token(context, admin.admin_token)


@pytest.mark.asyncio
async def test_expired_admin_token_is_stale(db_session, catalog, store, make_user):
    user = await make_user("admin@example.com", [admin_in_master("system-admin")])
    await store.create_session("sid-1", {"user_id": str(user.id), "refresh_jti": "r"}, 3600)
    context = AuthContext(user=user, session_id="sid-1", claims={})
    manager = EscalationManager(db_session, catalog, store)

    expired = create_admin_token(
        subject=str(user.id),
        session_id="sid-1",
        token_id=new_token_id(),
        roles=["system-admin"],
        access_rights=["system:*"],
        expires_delta=timedelta(minutes=-1),
    )

    with pytest.raises(AdminSessionStale):
        await manager.validate_admin_token(context, expired)
    with pytest.raises(AdminTokenRequired):
        await manager.validate_admin_token(context, None)
