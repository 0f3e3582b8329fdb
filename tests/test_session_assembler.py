import pytest
from sqlalchemy import delete

from app.core.exceptions import DepartmentInactive, DepartmentNotFound, NotAMember, UnknownRole
from app.models.enums import Dashboard, PrincipalKind
from app.models.role import RoleDefinition
from app.services.membership_service import add_membership, ensure_principal
from app.services.session_service import SessionAssembler, claims_from_view, diff_claims

MASTER = 1


def staff_in(department, *roles, **extra):
    return {"kind": PrincipalKind.Staff, "department_id": department.id, "roles": list(roles), **extra}


def learner_in(department, *roles, **extra):
    return {"kind": PrincipalKind.Learner, "department_id": department.id, "roles": list(roles), **extra}


def admin_in_master(*roles):
    return {"kind": PrincipalKind.GlobalAdmin, "department_id": MASTER, "roles": list(roles)}


@pytest.fixture
def assembler(db_session, catalog):
    return SessionAssembler(db_session, catalog)


# ------------------------------------------------------------------
# Dashboard / user types
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_hybrid_learner_staff_lands_on_staff_dashboard(assembler, make_user, make_department):
    dept = await make_department("Engineering")
    user = await make_user("hybrid@example.com", [
        learner_in(dept, "course-taker"),
        staff_in(dept, "instructor"),
    ])

    view = await assembler.build_session_view(user)

    assert view.default_dashboard == Dashboard.Staff
    assert view.user_types == [PrincipalKind.Staff, PrincipalKind.Learner]


@pytest.mark.asyncio
async def test_dashboard_for_single_kinds(assembler, make_user, make_department):
    dept = await make_department("Engineering")
    learner = await make_user("learner@example.com", [learner_in(dept, "course-taker")])
    admin = await make_user("admin@example.com", [admin_in_master("system-admin")])

    assert (await assembler.build_session_view(learner)).default_dashboard == Dashboard.Learner
    assert (await assembler.build_session_view(admin)).default_dashboard == Dashboard.Staff


@pytest.mark.asyncio
async def test_user_without_principals(assembler, make_user):
    user = await make_user("nobody@example.com")

    view = await assembler.build_session_view(user)

    assert view.user_types == []
    assert view.department_memberships == []
    assert view.all_access_rights == []
    assert view.can_escalate_to_admin is False
    assert view.default_dashboard == Dashboard.Learner


# ------------------------------------------------------------------
# Rights and memberships
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_rights_union_spans_every_principal_kind(assembler, make_user, make_department):
    science = await make_department("Science")
    arts = await make_department("Arts")
    user = await make_user("hybrid@example.com", [
        learner_in(arts, "course-taker"),
        staff_in(science, "instructor", is_primary=True),
    ])

    view = await assembler.build_session_view(user)

    assert "learner:certificates:download" in view.all_access_rights
    assert "grades:own-classes:manage" in view.all_access_rights
    assert view.all_access_rights.count("content:courses:read") == 1
    assert sorted(view.department_ids()) == sorted([science.id, arts.id])

    science_view = next(d for d in view.department_memberships if d.department_id == science.id)
    assert science_view.is_primary is True
    assert science_view.is_direct_member is True


@pytest.mark.asyncio
async def test_shared_department_is_listed_once_with_merged_roles(assembler, make_user, make_department):
    dept = await make_department("Engineering")
    user = await make_user("hybrid@example.com", [
        learner_in(dept, "auditor"),
        staff_in(dept, "instructor"),
    ])

    view = await assembler.build_session_view(user)

    assert len(view.department_memberships) == 1
    assert view.department_memberships[0].roles == ["instructor", "auditor"]


@pytest.mark.asyncio
async def test_view_carries_cascaded_children(assembler, make_user, make_department):
    faculty = await make_department("Faculty")
    school = await make_department("School", parent=faculty)
    await make_department("Lab", parent=school)
    await make_department("Vault", parent=faculty, require_explicit_membership=True)
    user = await make_user("staff@example.com", [staff_in(faculty, "instructor")])

    view = await assembler.build_session_view(user)

    (faculty_view,) = view.department_memberships
    assert [c.department_name for c in faculty_view.child_departments] == ["School"]
    assert [c.department_name for c in faculty_view.child_departments[0].child_departments] == ["Lab"]
    assert faculty_view.child_departments[0].inherited_from == faculty.id


@pytest.mark.asyncio
async def test_inactive_membership_and_department_are_left_out(assembler, make_user, make_department):
    open_dept = await make_department("Open")
    closed_dept = await make_department("Closed", is_active=False)
    dormant = await make_department("Dormant")
    user = await make_user("staff@example.com", [
        staff_in(open_dept, "instructor"),
        staff_in(closed_dept, "billing-admin"),
        staff_in(dormant, "department-admin", is_active=False),
    ])

    view = await assembler.build_session_view(user)

    assert view.department_ids() == [open_dept.id]
    assert not any(r.startswith("billing:") for r in view.all_access_rights)
    assert "staff:department:manage" not in view.all_access_rights


@pytest.mark.asyncio
async def test_role_missing_from_catalog_fails_loudly(assembler, db_session, catalog, make_user, make_department):
    dept = await make_department("Engineering")
    user = await make_user("staff@example.com", [staff_in(dept, "billing-admin")])

    await db_session.execute(delete(RoleDefinition).where(RoleDefinition.name == "billing-admin"))
    await db_session.commit()
    await catalog.reload(db_session)

    with pytest.raises(UnknownRole):
        await assembler.build_session_view(user)


# ------------------------------------------------------------------
# Escalation eligibility
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_can_escalate_only_with_global_admin_roles(assembler, db_session, make_user, make_department):
    dept = await make_department("Engineering")
    admin = await make_user("admin@example.com", [admin_in_master("system-admin")])
    staff = await make_user("staff@example.com", [staff_in(dept, "department-admin")])
    roleless = await make_user("roleless@example.com")
    await ensure_principal(db_session, roleless.id, PrincipalKind.GlobalAdmin)

    assert (await assembler.build_session_view(admin)).can_escalate_to_admin is True
    assert (await assembler.build_session_view(staff)).can_escalate_to_admin is False
    assert (await assembler.build_session_view(roleless)).can_escalate_to_admin is False


# ------------------------------------------------------------------
# Switch department
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_switch_to_inherited_department_updates_selection(assembler, db_session, make_user, make_department):
    faculty = await make_department("Faculty")
    school = await make_department("School", parent=faculty)
    user = await make_user("staff@example.com", [staff_in(faculty, "instructor", "content-admin")])

    view = await assembler.switch_department(user, school.id)
    await db_session.refresh(user)

    assert view.is_direct_member is False
    assert view.inherited_from == faculty.id
    assert view.roles == ["instructor", "content-admin"]
    assert user.last_selected_department_id == school.id


@pytest.mark.asyncio
async def test_switch_failures(assembler, db_session, make_user, make_department):
    faculty = await make_department("Faculty")
    vault = await make_department("Vault", parent=faculty, require_explicit_membership=True)
    paused = await make_department("Paused", parent=faculty, is_active=False)
    hidden = await make_department("Hidden", parent=faculty, is_visible=False)
    user = await make_user("staff@example.com", [staff_in(faculty, "instructor")])

    with pytest.raises(NotAMember):
        await assembler.switch_department(user, vault.id)
    with pytest.raises(DepartmentInactive):
        await assembler.switch_department(user, paused.id)
    with pytest.raises(DepartmentNotFound):
        await assembler.switch_department(user, hidden.id)
    with pytest.raises(DepartmentNotFound):
        await assembler.switch_department(user, 9999)

    await db_session.refresh(user)
    assert user.last_selected_department_id is None


# ------------------------------------------------------------------
# Continuation delta
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_unchanged_memberships_yield_empty_delta(assembler, make_user, make_department):
    dept = await make_department("Engineering")
    user = await make_user("staff@example.com", [staff_in(dept, "instructor")])

    claims = claims_from_view(await assembler.build_session_view(user))

    for _ in range(2):
        view = await assembler.build_session_view(user)
        assert diff_claims(claims, view).is_empty()
        claims = claims_from_view(view)


@pytest.mark.asyncio
async def test_delta_reports_out_of_band_changes(db_session, catalog, make_user, make_department):
    engineering = await make_department("Engineering")
    finance = await make_department("Finance")
    user = await make_user("staff@example.com", [staff_in(engineering, "instructor")])

    before = claims_from_view(await SessionAssembler(db_session, catalog).build_session_view(user))
    await add_membership(db_session, catalog, user.id, PrincipalKind.Staff, finance.id, ["billing-admin"])
    after = await SessionAssembler(db_session, catalog).build_session_view(user)

    changes = diff_claims(before, after)

    assert changes.roles_added == ["billing-admin"]
    assert "billing:invoices:manage" in changes.rights_added
    assert changes.departments_added == [finance.id]
    assert changes.roles_removed == []
    assert changes.rights_removed == []
