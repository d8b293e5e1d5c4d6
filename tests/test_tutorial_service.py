"""
Scriptly Backend — Tutorial Workflow Tests
============================================

What:  The tutorial approval state machine, edit rules and visibility,
       plus the category rules tutorials depend on.

What we test:
    ✅ Initial status: approved for admin authors, pending otherwise
    ✅ approve / reject and the 409 on a redundant transition
    ✅ Author edits send reviewed tutorials back to pending
    ✅ Non-admins can never write status; admin edits keep it
    ✅ Listing hides non-approved tutorials from non-admins
    ✅ Keyword normalization and search
    ✅ Categories: lowercase unique names, in-use categories cannot go
"""

import uuid

import pytest

from scriptly.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from scriptly.models.enums import Role, TutorialStatus
from scriptly.schemas.tutorial import (
    CategoryCreateRequest,
    TutorialCreateRequest,
    TutorialUpdateRequest,
)
from scriptly.services.category_service import category_service
from scriptly.services.tutorial_service import normalize_keywords, tutorial_service


async def _create(db, author, category, **extra):
    data = TutorialCreateRequest(
        title=extra.pop("title", "Async SQLAlchemy"),
        content=extra.pop("content", "Sessions, flushes and selectinload."),
        category_id=category.id,
        **extra,
    )
    return await tutorial_service.create_tutorial(db, author, data)


def _edit(**fields) -> TutorialUpdateRequest:
    return TutorialUpdateRequest.model_validate(fields)


class TestNormalizeKeywords:
    """Tests for normalize_keywords."""

    def test_trims_lowercases_and_dedupes(self):
        """Keywords are trimmed, lowercased and deduplicated in order."""
        assert normalize_keywords([" Python", "python", "", "SQL "]) == ["python", "sql"]

    def test_none_is_empty(self):
        """None normalizes to an empty list."""
        assert normalize_keywords(None) == []

    def test_comma_string_accepted_by_schema(self):
        """A comma-separated string is split by the request schema."""
        data = TutorialCreateRequest.model_validate({
            "title": "t", "content": "c", "categoryId": str(uuid.uuid4()), "keywords": "a, b",
        })
        assert normalize_keywords(data.keywords) == ["a", "b"]


class TestTutorialCreation:
    """Tests for create_tutorial."""

    @pytest.mark.asyncio
    async def test_student_tutorial_starts_pending(self, db_session, make_user, make_category):
        """A student's tutorial starts pending with normalized keywords."""
        sam = await make_user("Sam")
        category = await make_category()

        tutorial = await _create(db_session, sam, category, keywords=["ORM", "orm"])

        assert tutorial.status == TutorialStatus.PENDING
        assert tutorial.author.id == sam.id
        assert tutorial.category.name == "python"
        assert tutorial.keywords == ["orm"]

    @pytest.mark.asyncio
    async def test_admin_tutorial_starts_approved(self, db_session, make_user, make_category):
        """An admin's tutorial starts approved."""
        admin = await make_user("Ada", role=Role.ADMIN)
        category = await make_category()

        tutorial = await _create(db_session, admin, category)

        assert tutorial.status == TutorialStatus.APPROVED

    @pytest.mark.asyncio
    async def test_unknown_category_is_404(self, db_session, make_user):
        """Creating a tutorial in an unknown category is a not-found error."""
        sam = await make_user("Sam")
        with pytest.raises(NotFoundError):
            await tutorial_service.create_tutorial(
                db_session, sam,
                TutorialCreateRequest(title="t", content="c", category_id=uuid.uuid4()),
            )

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, db_session, make_user, make_category):
        """A blank title fails validation."""
        sam = await make_user("Sam")
        category = await make_category()
        with pytest.raises(ValidationError):
            await _create(db_session, sam, category, title="   ")


class TestStatusTransitions:
    """Tests for approve and reject."""

    @pytest.mark.asyncio
    async def test_approve_then_redundant_approve(self, db_session, make_user, make_category):
        """Approving twice conflicts on the second call."""
        admin = await make_user("Ada", role=Role.ADMIN)
        sam = await make_user("Sam")
        tutorial = await _create(db_session, sam, await make_category())

        approved = await tutorial_service.approve(db_session, admin, tutorial.id)
        assert approved.status == TutorialStatus.APPROVED

        with pytest.raises(ConflictError, match="Tutorial is already approved."):
            await tutorial_service.approve(db_session, admin, tutorial.id)

    @pytest.mark.asyncio
    async def test_reject_approved(self, db_session, make_user, make_category):
        """An approved tutorial can be rejected, but only once."""
        admin = await make_user("Ada", role=Role.ADMIN)
        tutorial = await _create(db_session, admin, await make_category())

        rejected = await tutorial_service.reject(db_session, admin, tutorial.id)

        assert rejected.status == TutorialStatus.REJECTED
        with pytest.raises(ConflictError, match="Tutorial is already rejected."):
            await tutorial_service.reject(db_session, admin, tutorial.id)

    @pytest.mark.asyncio
    async def test_author_cannot_approve(self, db_session, make_user, make_category):
        """Authors cannot approve their own tutorials."""
        sam = await make_user("Sam")
        tutorial = await _create(db_session, sam, await make_category())
        with pytest.raises(ForbiddenError, match="Only Admins can approve or reject tutorials."):
            await tutorial_service.approve(db_session, sam, tutorial.id)

    @pytest.mark.asyncio
    async def test_approve_unknown_is_404(self, db_session, make_user):
        """Approving an unknown tutorial is a not-found error."""
        admin = await make_user("Ada", role=Role.ADMIN)
        with pytest.raises(NotFoundError):
            await tutorial_service.approve(db_session, admin, uuid.uuid4())


class TestTutorialEdits:
    """Tests for update_tutorial and delete_tutorial."""

    @pytest.mark.asyncio
    async def test_author_edit_of_approved_goes_back_to_pending(
        self, db_session, make_user, make_category
    ):
        """An author edit sends an approved tutorial back to pending."""
        admin = await make_user("Ada", role=Role.ADMIN)
        sam = await make_user("Sam")
        tutorial = await _create(db_session, sam, await make_category())
        await tutorial_service.approve(db_session, admin, tutorial.id)

        edited = await tutorial_service.update_tutorial(db_session, sam, tutorial.id, _edit(title="v2"))

        assert edited.title == "v2"
        assert edited.status == TutorialStatus.PENDING

    @pytest.mark.asyncio
    async def test_author_edit_of_rejected_goes_back_to_pending(
        self, db_session, make_user, make_category
    ):
        """An author edit sends a rejected tutorial back to pending."""
        admin = await make_user("Ada", role=Role.ADMIN)
        sam = await make_user("Sam")
        tutorial = await _create(db_session, sam, await make_category())
        await tutorial_service.reject(db_session, admin, tutorial.id)

        edited = await tutorial_service.update_tutorial(
            db_session, sam, tutorial.id, _edit(keywords="fixed,typos")
        )

        assert edited.status == TutorialStatus.PENDING
        assert edited.keywords == ["fixed", "typos"]

    @pytest.mark.asyncio
    async def test_admin_edit_keeps_status(self, db_session, make_user, make_category):
        """An admin edit keeps the current status."""
        admin = await make_user("Ada", role=Role.ADMIN)
        sam = await make_user("Sam")
        tutorial = await _create(db_session, sam, await make_category())
        await tutorial_service.approve(db_session, admin, tutorial.id)

        edited = await tutorial_service.update_tutorial(db_session, admin, tutorial.id, _edit(title="Typo fix"))

        assert edited.status == TutorialStatus.APPROVED

    @pytest.mark.asyncio
    async def test_admin_may_set_status_in_edit(self, db_session, make_user, make_category):
        """An admin may set the status in an edit."""
        admin = await make_user("Ada", role=Role.ADMIN)
        sam = await make_user("Sam")
        tutorial = await _create(db_session, sam, await make_category())

        edited = await tutorial_service.update_tutorial(db_session, admin, tutorial.id, _edit(status="rejected"))

        assert edited.status == TutorialStatus.REJECTED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, message", [
        ("approved", "Only Admins can approve or reject tutorials."),
        ("pending", "Authors cannot set tutorial status directly."),
    ])
    async def test_author_cannot_write_status(self, db_session, make_user, make_category, status, message):
        """Authors cannot write any status, pending included."""
        sam = await make_user("Sam")
        tutorial = await _create(db_session, sam, await make_category())
        with pytest.raises(ForbiddenError, match=message):
            await tutorial_service.update_tutorial(db_session, sam, tutorial.id, _edit(status=status))

    @pytest.mark.asyncio
    async def test_stranger_cannot_edit(self, db_session, make_user, make_category):
        """Users other than the author and admins cannot edit."""
        sam = await make_user("Sam")
        zoe = await make_user("Zoe")
        tutorial = await _create(db_session, sam, await make_category())
        with pytest.raises(ForbiddenError):
            await tutorial_service.update_tutorial(db_session, zoe, tutorial.id, _edit(title="mine"))

    @pytest.mark.asyncio
    async def test_category_cannot_be_removed(self, db_session, make_user, make_category):
        """Clearing the category fails validation."""
        sam = await make_user("Sam")
        tutorial = await _create(db_session, sam, await make_category())
        with pytest.raises(ValidationError, match="A tutorial must have a category."):
            await tutorial_service.update_tutorial(db_session, sam, tutorial.id, _edit(categoryId=None))

    @pytest.mark.asyncio
    async def test_only_admin_deletes(self, db_session, make_user, make_category):
        """Only admins delete tutorials; the tutorial is gone afterwards."""
        admin = await make_user("Ada", role=Role.ADMIN)
        sam = await make_user("Sam")
        tutorial = await _create(db_session, sam, await make_category())

        with pytest.raises(ForbiddenError):
            await tutorial_service.delete_tutorial(db_session, sam, tutorial.id)
        await tutorial_service.delete_tutorial(db_session, admin, tutorial.id)
        with pytest.raises(NotFoundError):
            await tutorial_service.get_tutorial(db_session, admin, tutorial.id)


class TestVisibility:
    """Tests for listing, search and single-tutorial visibility."""

    @pytest.mark.asyncio
    async def test_listing_hides_unapproved_from_non_admins(self, db_session, make_user, make_category):
        """Non-admins only list approved tutorials whatever status they ask for."""
        admin = await make_user("Ada", role=Role.ADMIN)
        sam = await make_user("Sam")
        category = await make_category()
        await _create(db_session, sam, category, title="Draft")
        await _create(db_session, admin, category, title="Published")

        public = await tutorial_service.list_tutorials(db_session, viewer=None)
        own = await tutorial_service.list_tutorials(db_session, viewer=sam, status="pending")
        everything = await tutorial_service.list_tutorials(db_session, viewer=admin, status="all")
        pending = await tutorial_service.list_tutorials(db_session, viewer=admin, status="pending")

        assert [t.title for t in public] == ["Published"]
        assert [t.title for t in own] == ["Published"]
        assert sorted(t.title for t in everything) == ["Draft", "Published"]
        assert [t.title for t in pending] == ["Draft"]

    @pytest.mark.asyncio
    async def test_invalid_status_filter_rejected_for_admin(self, db_session, make_user):
        """An unknown status filter fails validation for admins."""
        admin = await make_user("Ada", role=Role.ADMIN)
        with pytest.raises(ValidationError, match="Invalid status"):
            await tutorial_service.list_tutorials(db_session, viewer=admin, status="archived")

    @pytest.mark.asyncio
    async def test_search_matches_title_content_and_keywords(self, db_session, make_user, make_category):
        """Search is case-insensitive and treats % literally."""
        admin = await make_user("Ada", role=Role.ADMIN)
        category = await make_category()
        await _create(db_session, admin, category, title="Alembic basics", content="migrations")
        await _create(db_session, admin, category, title="Other", content="nothing", keywords=["pydantic"])

        by_title = await tutorial_service.list_tutorials(db_session, search="ALEMBIC")
        by_keyword = await tutorial_service.list_tutorials(db_session, search="pydantic")
        by_nothing = await tutorial_service.list_tutorials(db_session, search="100%")

        assert [t.title for t in by_title] == ["Alembic basics"]
        assert [t.title for t in by_keyword] == ["Other"]
        assert by_nothing == []

    @pytest.mark.asyncio
    async def test_search_finds_non_ascii_keyword(self, db_session, make_user, make_category):
        """Keywords with non-ASCII letters are found in any case."""
        admin = await make_user("Ada", role=Role.ADMIN)
        category = await make_category()
        await _create(db_session, admin, category, title="Other", content="nothing", keywords=["Café"])

        exact = await tutorial_service.list_tutorials(db_session, search="café")
        upper = await tutorial_service.list_tutorials(db_session, search="CAFÉ")
        partial = await tutorial_service.list_tutorials(db_session, search="fé")

        assert [t.keywords for t in exact] == [["café"]]
        assert [t.title for t in upper] == ["Other"]
        assert [t.title for t in partial] == ["Other"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("term", ['", "', "[", '"', ","])
    async def test_search_ignores_list_punctuation(self, db_session, make_user, make_category, term):
        """Quotes, commas and brackets never match a keyword list."""
        admin = await make_user("Ada", role=Role.ADMIN)
        category = await make_category()
        await _create(db_session, admin, category, title="Other", content="nothing", keywords=["alpha", "beta"])

        assert await tutorial_service.list_tutorials(db_session, search=term) == []

    @pytest.mark.asyncio
    async def test_search_matches_keyword_fragment(self, db_session, make_user, make_category):
        """Search matches part of a single keyword."""
        admin = await make_user("Ada", role=Role.ADMIN)
        category = await make_category()
        await _create(db_session, admin, category, title="Other", content="nothing", keywords=["alpha", "beta"])

        hits = await tutorial_service.list_tutorials(db_session, search="ET")

        assert [t.title for t in hits] == ["Other"]

    @pytest.mark.asyncio
    async def test_pending_visible_to_author_only(self, db_session, make_user, make_category):
        """A pending tutorial is visible to its author only."""
        sam = await make_user("Sam")
        zoe = await make_user("Zoe")
        tutorial = await _create(db_session, sam, await make_category())

        assert (await tutorial_service.get_tutorial(db_session, sam, tutorial.id)).id == tutorial.id
        with pytest.raises(ForbiddenError, match="pending or rejected"):
            await tutorial_service.get_tutorial(db_session, zoe, tutorial.id)
        with pytest.raises(ForbiddenError):
            await tutorial_service.get_tutorial(db_session, None, tutorial.id)


class TestCategories:
    """Tests for category management."""

    @pytest.mark.asyncio
    async def test_names_are_lowercased_and_unique(self, db_session, make_user):
        """Category names are trimmed, lowercased and unique."""
        admin = await make_user("Ada", role=Role.ADMIN)

        category = await category_service.create_category(
            db_session, admin, CategoryCreateRequest(name="  Web Dev ")
        )
        assert category.name == "web dev"

        with pytest.raises(ConflictError):
            await category_service.create_category(db_session, admin, CategoryCreateRequest(name="WEB DEV"))

    @pytest.mark.asyncio
    async def test_in_use_category_cannot_be_deleted(self, db_session, make_user, make_category):
        """A category with tutorials cannot be deleted."""
        admin = await make_user("Ada", role=Role.ADMIN)
        category = await make_category()
        await _create(db_session, admin, category)

        with pytest.raises(ConflictError, match="It has 1 tutorials linked to it."):
            await category_service.delete_category(db_session, admin, category.id)

    @pytest.mark.asyncio
    async def test_unused_category_deleted(self, db_session, make_user, make_category):
        """An unused category is deleted and its name returned."""
        admin = await make_user("Ada", role=Role.ADMIN)
        category = await make_category("rust")

        assert await category_service.delete_category(db_session, admin, category.id) == "rust"
        assert await category_service.list_categories(db_session) == []

    @pytest.mark.asyncio
    async def test_non_admin_cannot_manage(self, db_session, make_user):
        """Only admins may manage categories."""
        lena = await make_user("Lena", role=Role.CHAPTER_LEAD)
        with pytest.raises(ForbiddenError, match="Only Admins can manage categories."):
            await category_service.create_category(db_session, lena, CategoryCreateRequest(name="go"))
