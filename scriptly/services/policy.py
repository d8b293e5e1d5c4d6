"""
Scriptly Backend — Authorization Policy
=========================================

What:  Pure predicates deciding who may do what.
Why:   Every permission rule lives here, so routes and services never
       compare role strings ad hoc and a new Role member fails loudly in
       one place instead of silently falling through everywhere.
How:   Functions over ORM objects already loaded by the caller. Nothing
       here touches the database or raises HTTP errors; callers turn a
       `False` (or a denial reason) into ForbiddenError.

Role matching:
    Predicates that branch per role go through `_by_role()`, which raises
    on a Role member it has no entry for.
"""

import uuid
from typing import AbstractSet, Callable, Dict, Optional, TypeVar

from scriptly.models.enums import Role, TutorialStatus
from scriptly.models.chapter import Chapter
from scriptly.models.event import Event
from scriptly.models.tutorial import Tutorial
from scriptly.models.user import User

T = TypeVar("T")


def _by_role(role: Role, table: Dict[Role, Callable[[], T]]) -> T:
    try:
        branch = table[role]
    except KeyError:
        raise ValueError(f"Authorization policy has no rule for role {role!r}")
    return branch()


def is_admin(actor: Optional[User]) -> bool:
    return actor is not None and actor.role == Role.ADMIN


# ── Chapters & Events ─────────────────────────────────────────────────────


def can_manage_chapters(actor: User) -> bool:
    return is_admin(actor)


def can_create_event(actor: User, chapter: Chapter) -> bool:
    """Admins anywhere; a chapter lead only for the chapter they lead."""
    return _by_role(actor.role, {
        Role.ADMIN: lambda: True,
        Role.CHAPTER_LEAD: lambda: (
            chapter.chapter_lead_id is not None
            and chapter.chapter_lead_id == actor.id
        ),
        Role.STUDENT: lambda: False,
    })


def can_manage_event(actor: User, event: Event) -> bool:
    # Organizer rights are fixed at creation and not re-validated
    return is_admin(actor) or event.organizer_id == actor.id


# ── Tutorials ─────────────────────────────────────────────────────────────


def can_manage_tutorial(actor: User, tutorial: Tutorial) -> bool:
    return is_admin(actor) or tutorial.author_id == actor.id


def can_delete_tutorial(actor: User) -> bool:
    return is_admin(actor)


def can_set_tutorial_status(actor: User, new_status: TutorialStatus) -> bool:
    if new_status in (TutorialStatus.APPROVED, TutorialStatus.REJECTED):
        return is_admin(actor)
    return True


def can_view_tutorial(viewer: Optional[User], tutorial: Tutorial) -> bool:
    if tutorial.status == TutorialStatus.APPROVED:
        return True
    if viewer is None:
        return False
    return is_admin(viewer) or tutorial.author_id == viewer.id


# ── Users ─────────────────────────────────────────────────────────────────


def can_vouch(actor: User, target: User) -> bool:
    """
    No self-vouch for anyone. Admins may vouch for any other user, a
    chapter lead only for members of the chapter they are assigned to,
    students never.
    """
    if actor.id == target.id:
        return False
    return _by_role(actor.role, {
        Role.ADMIN: lambda: True,
        Role.CHAPTER_LEAD: lambda: (
            actor.chapter_id is not None
            and actor.chapter_id == target.chapter_id
        ),
        Role.STUDENT: lambda: False,
    })


def vouch_denial(actor: User) -> str:
    """Message explaining why can_vouch() refused."""
    if actor.role == Role.CHAPTER_LEAD:
        return "Chapter Leads can only vouch for members within their own assigned chapter."
    return "Not authorized to vouch for users"


def user_update_denial(
    actor: User,
    target: User,
    fields: AbstractSet[str],
    new_role: Optional[Role] = None,
) -> Optional[str]:
    """
    Returns the reason a profile update must be refused, or None.

    `fields` holds the names the request actually carries (`name`, `role`,
    `chapter_id`). Checks run in order; the first failure wins.

    Rules:
        1. Only the user themselves or an admin may edit a user at all.
        2. An admin cannot take away their own admin role.
        3. Only admins change roles.
        4. The chapter of a chapter lead or admin (their *current* role)
           is admin-managed, so a lead cannot detach themselves.
    """
    is_self = actor.id == target.id
    actor_is_admin = is_admin(actor)

    if not is_self and not actor_is_admin:
        return "Not authorized to update this user."
    if "role" in fields and is_self and actor_is_admin and new_role != Role.ADMIN:
        return "Admins cannot demote themselves."
    if "role" in fields and not actor_is_admin:
        return "Only Admins can change user roles."
    if "chapter_id" in fields and not actor_is_admin:
        chapter_is_admin_managed = _by_role(target.role, {
            Role.ADMIN: lambda: True,
            Role.CHAPTER_LEAD: lambda: True,
            Role.STUDENT: lambda: False,
        })
        if chapter_is_admin_managed:
            return "Only Admins can manage chapters for Chapter Leads or other Admins."
    return None


def can_modify_user(
    actor: User,
    target: User,
    fields: AbstractSet[str],
    new_role: Optional[Role] = None,
) -> bool:
    return user_update_denial(actor, target, fields, new_role) is None


def can_view_registered_events(actor: User, user_id: uuid.UUID) -> bool:
    return is_admin(actor) or actor.id == user_id


def can_change_password(actor: User, user_id: uuid.UUID) -> bool:
    return actor.id == user_id
