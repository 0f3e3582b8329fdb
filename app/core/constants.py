# app/core/constants.py

from app.models.enums import PrincipalKind

# ==========================================================
# ADMIN ROLES REQUIRED BY ADMIN-GATED ENDPOINTS
# ==========================================================
ROLE_SYSTEM_ADMIN = "system-admin"

# ==========================================================
# DEFAULT ROLE DEFINITIONS (seeded at startup)
# ==========================================================
ROLE_DEFINITIONS_DATA = [
    # --- LEARNER ROLES ---
    {
        "name": "course-taker",
        "principal_kind": PrincipalKind.Learner,
        "display_name": "Course Taker",
        "description": "Standard learner who enrolls in and completes courses",
        "access_rights": [
            "content:courses:read",
            "content:lessons:read",
            "content:exams:attempt",
            "enrollment:own:read",
            "enrollment:own:update",
            "learner:profile:read",
            "learner:profile:update",
            "learner:progress:read",
            "learner:certificates:read",
            "learner:certificates:download",
        ],
    },
    {
        "name": "auditor",
        "principal_kind": PrincipalKind.Learner,
        "display_name": "Auditor",
        "description": "View-only access, cannot earn credit or complete exams",
        "access_rights": [
            "content:courses:read",
            "content:lessons:read",
            "learner:profile:read",
        ],
    },
    {
        "name": "learner-supervisor",
        "principal_kind": PrincipalKind.Learner,
        "display_name": "Learner Supervisor",
        "description": "Elevated permissions for TAs, peer mentors, and learning assistants",
        "access_rights": [
            "content:courses:read",
            "content:lessons:read",
            "content:exams:attempt",
            "enrollment:own:read",
            "enrollment:department:read",
            "learner:profile:read",
            "learner:department:read",
            "reports:department-progress:read",
        ],
    },

    # --- STAFF ROLES ---
    {
        "name": "instructor",
        "principal_kind": PrincipalKind.Staff,
        "display_name": "Instructor",
        "description": "Teaches classes, grades student work, and manages course delivery",
        "access_rights": [
            "content:courses:read",
            "content:lessons:read",
            "content:classes:read",
            "content:classes:manage-own",
            "enrollment:department:read",
            "learner:department:read",
            "reports:class:read",
            "reports:class:export",
            "grades:department:read",
            "grades:own-classes:manage",
        ],
    },
    {
        "name": "content-admin",
        "principal_kind": PrincipalKind.Staff,
        "display_name": "Content Administrator",
        "description": "Creates and manages courses, programs, and educational content",
        "access_rights": [
            "content:courses:manage",
            "content:programs:manage",
            "content:lessons:manage",
            "content:exams:manage",
            "content:scorm:manage",
            "reports:content:read",
            "analytics:courses:read",
            "analytics:courses:export",
        ],
    },
    {
        "name": "department-admin",
        "principal_kind": PrincipalKind.Staff,
        "display_name": "Department Administrator",
        "description": "Manages department operations, staff, learners, and settings",
        "access_rights": [
            "content:courses:read",
            "content:classes:manage",
            "staff:department:manage",
            "learner:department:manage",
            "enrollment:department:manage",
            "reports:department:read",
            "reports:department:export",
            "settings:department:manage",
            "analytics:courses:read",
            "analytics:courses:export",
        ],
    },
    {
        "name": "billing-admin",
        "principal_kind": PrincipalKind.Staff,
        "display_name": "Billing Administrator",
        "description": "Department-level billing and financial operations",
        "access_rights": [
            "billing:department:read",
            "billing:department:manage",
            "billing:invoices:manage",
            "billing:payments:read",
            "reports:billing-department:read",
        ],
    },

    # --- GLOBAL ADMIN ROLES (master department only) ---
    {
        "name": ROLE_SYSTEM_ADMIN,
        "principal_kind": PrincipalKind.GlobalAdmin,
        "display_name": "System Administrator",
        "description": "Full system access",
        "access_rights": [
            "system:*",
            "content:*",
            "enrollment:*",
            "staff:*",
            "learner:*",
            "reports:*",
            "billing:*",
            "audit:*",
        ],
    },
    {
        "name": "enrollment-admin",
        "principal_kind": PrincipalKind.GlobalAdmin,
        "display_name": "Enrollment Administrator",
        "description": "Manages enrollment system, policies, and bulk operations globally",
        "access_rights": [
            "enrollment:system:manage",
            "enrollment:bulk:manage",
            "enrollment:policies:manage",
            "reports:enrollment:read",
        ],
    },
    {
        "name": "course-admin",
        "principal_kind": PrincipalKind.GlobalAdmin,
        "display_name": "Course Administrator",
        "description": "Manages course system, templates, and categories globally",
        "access_rights": [
            "content:system:manage",
            "content:templates:manage",
            "content:categories:manage",
            "reports:content-system:read",
        ],
    },
    {
        "name": "theme-admin",
        "principal_kind": PrincipalKind.GlobalAdmin,
        "display_name": "Theme Administrator",
        "description": "Manages themes, branding, UI customization, and email templates",
        "access_rights": [
            "system:themes:manage",
            "system:branding:manage",
            "system:emails:manage",
        ],
    },
    {
        "name": "financial-admin",
        "principal_kind": PrincipalKind.GlobalAdmin,
        "display_name": "Financial Administrator",
        "description": "System-wide financial operations, billing policies, and financial reporting",
        "access_rights": [
            "billing:system:manage",
            "billing:policies:manage",
            "billing:reports:read",
            "billing:refunds:manage",
            "reports:financial:read",
            "reports:financial:export",
        ],
    },
]
