# Importing every model registers it with Base.metadata (Alembic, create_all)
from scriptly.models.enums import Role, TutorialStatus
from scriptly.models.user import User, user_vouches
from scriptly.models.chapter import Chapter
from scriptly.models.event import Event, event_attendees
from scriptly.models.category import Category
from scriptly.models.tutorial import Tutorial

__all__ = [
    "Role",
    "TutorialStatus",
    "User",
    "user_vouches",
    "Chapter",
    "Event",
    "event_attendees",
    "Category",
    "Tutorial",
]
