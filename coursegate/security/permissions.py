"""Security layer — Role -> capability table and pure permission predicates.

The table is built once at import time and exposed as a read-only mapping of
frozensets, so no code path can mutate it at runtime.  Each role lists its
capabilities explicitly: there is no inheritance, and ADMIN is *not* a
wildcard.  Call sites that let an admin act on any resource do so with an
explicit, auditable check (see :func:`coursegate.security.authorizer.authorize_owner_or_admin`).

Usage::

    has_permission(Role.INSTRUCTOR, Capability.GRADE_SUBMISSIONS)   # True
    has_any_permission(Role.STUDENT, ["view_courses", "manage_users"])  # True
    has_all_permissions(Role.STUDENT, [])                           # True
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from coursegate.security.models import Role


class Capability:
    """Well-known capability identifiers.

    Plain string constants rather than an enum, so callers can pass the raw
    strings that arrive from configuration or request payloads.
    """

    # -- Administration -----------------------------------------------------
    MANAGE_USERS = "manage_users"
    MANAGE_ROLES = "manage_roles"
    MANAGE_ROOMS = "manage_rooms"
    MANAGE_SETTINGS = "manage_settings"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    VIEW_REPORTS = "view_reports"

    # -- Catalogue ----------------------------------------------------------
    MANAGE_COURSES = "manage_courses"
    MANAGE_SECTIONS = "manage_sections"
    CREATE_COURSES = "create_courses"
    MANAGE_OWN_COURSES = "manage_own_courses"
    CREATE_LESSONS = "create_lessons"
    MANAGE_SCHEDULES = "manage_schedules"
    MANAGE_CONTENT = "manage_content"
    VIEW_COURSES = "view_courses"

    # -- Enrollment ---------------------------------------------------------
    MANAGE_ENROLLMENTS = "manage_enrollments"
    VIEW_ENROLLMENTS = "view_enrollments"
    ENROLL_COURSES = "enroll_courses"
    VIEW_TIMETABLE = "view_timetable"

    # -- Coursework ---------------------------------------------------------
    CREATE_ASSIGNMENTS = "create_assignments"
    GRADE_SUBMISSIONS = "grade_submissions"
    SUBMIT_ASSIGNMENTS = "submit_assignments"
    VIEW_GRADES = "view_grades"


ROLE_PERMISSIONS: Mapping[Role, frozenset[str]] = MappingProxyType(
    {
        Role.ADMIN: frozenset(
            {
                Capability.MANAGE_USERS,
                Capability.MANAGE_ROLES,
                Capability.MANAGE_ROOMS,
                Capability.MANAGE_COURSES,
                Capability.MANAGE_SECTIONS,
                Capability.MANAGE_ENROLLMENTS,
                Capability.VIEW_AUDIT_LOGS,
                Capability.MANAGE_SETTINGS,
                Capability.VIEW_REPORTS,
            }
        ),
        Role.MODERATOR: frozenset(
            {
                Capability.MANAGE_ENROLLMENTS,
                Capability.MANAGE_CONTENT,
                Capability.VIEW_COURSES,
            }
        ),
        Role.INSTRUCTOR: frozenset(
            {
                Capability.CREATE_COURSES,
                Capability.MANAGE_OWN_COURSES,
                Capability.CREATE_LESSONS,
                Capability.CREATE_ASSIGNMENTS,
                Capability.GRADE_SUBMISSIONS,
                Capability.VIEW_ENROLLMENTS,
                Capability.MANAGE_SCHEDULES,
            }
        ),
        Role.STUDENT: frozenset(
            {
                Capability.VIEW_COURSES,
                Capability.ENROLL_COURSES,
                Capability.VIEW_TIMETABLE,
                Capability.SUBMIT_ASSIGNMENTS,
                Capability.VIEW_GRADES,
            }
        ),
    }
)


def _coerce_role(role: Role | str) -> Role | None:
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def permissions_for(role: Role | str) -> frozenset[str]:
    """Return the capability set of *role* (empty for unknown roles)."""
    resolved = _coerce_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(resolved, frozenset())


def has_permission(role: Role | str, permission: str) -> bool:
    """True iff *permission* is listed for *role*.  Unknown roles have none."""
    return permission in permissions_for(role)


def has_any_permission(role: Role | str, permissions: Iterable[str]) -> bool:
    """Logical OR of :func:`has_permission`; False for an empty iterable."""
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role: Role | str, permissions: Iterable[str]) -> bool:
    """Logical AND of :func:`has_permission`; True for an empty iterable."""
    return all(has_permission(role, p) for p in permissions)
