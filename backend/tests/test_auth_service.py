"""
Tests for mapping federated identities onto local users.
"""
from dataclasses import replace

import pytest
from sqlalchemy import func, select

from app.models.user import User
from app.services import auth_service
from app.services.auth_service import apply_login, upsert_user
from app.services.google_oauth import ExternalProfile


def _profile(**overrides) -> ExternalProfile:
    fields = {
        "external_id": "google-123",
        "display_name": "Casey Jones",
        "email": "casey@example.com",
        "refresh_token": "refresh-abc",
    }
    fields.update(overrides)
    return ExternalProfile(**fields)


class TestApplyLogin:
    """apply_login(): the update half of the upsert."""

    def test_display_name_always_refreshed(self):
        user = User(display_name="Old", email="casey@example.com", refresh_token="keep")
        apply_login(user, _profile(display_name="New"))
        assert user.display_name == "New"

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token_never_erases_stored_token(self, token):
        user = User(display_name="Casey", email="casey@example.com", refresh_token="keep")
        apply_login(user, _profile(refresh_token=token))
        assert user.refresh_token == "keep"

    def test_new_token_replaces_stored_token(self):
        user = User(display_name="Casey", email="casey@example.com", refresh_token="old")
        apply_login(user, _profile(refresh_token="new"))
        assert user.refresh_token == "new"

    def test_email_is_not_refreshed(self):
        user = User(display_name="Casey", email="casey@example.com")
        apply_login(user, _profile(email="changed@example.com"))
        assert user.email == "casey@example.com"

    def test_stamps_last_login(self):
        user = User(display_name="Casey", email="casey@example.com")
        apply_login(user, _profile())
        assert user.last_login_at is not None


class TestUpsertUser:
    """upsert_user() against a real (SQLite) session."""

    @pytest.mark.asyncio
    async def test_first_login_creates_user(self, db_session):
        user = await upsert_user(db_session, _profile())

        assert user.id is not None
        assert user.external_id == "google-123"
        assert user.display_name == "Casey Jones"
        assert user.email == "casey@example.com"
        assert user.refresh_token == "refresh-abc"
        assert user.last_login_at is not None

    @pytest.mark.asyncio
    async def test_first_login_without_token_stores_null(self, db_session):
        user = await upsert_user(db_session, _profile(refresh_token=None))
        assert user.refresh_token is None

    @pytest.mark.asyncio
    async def test_repeat_login_reuses_row(self, db_session):
        first = await upsert_user(db_session, _profile())
        second = await upsert_user(db_session, _profile(display_name="Casey J."))

        count = (await db_session.execute(select(func.count(User.id)))).scalar()
        assert count == 1
        assert second.id == first.id
        assert second.display_name == "Casey J."

    @pytest.mark.asyncio
    async def test_repeat_login_without_token_keeps_token(self, db_session):
        await upsert_user(db_session, _profile(refresh_token="first-consent"))
        user = await upsert_user(db_session, _profile(refresh_token=None))

        assert user.refresh_token == "first-consent"

    @pytest.mark.asyncio
    async def test_distinct_identities_get_distinct_users(self, db_session):
        a = await upsert_user(db_session, _profile())
        b = await upsert_user(db_session, replace(_profile(), external_id="google-456", email="b@example.com"))

        assert a.id != b.id

    @pytest.mark.asyncio
    async def test_concurrent_first_login_updates_winning_row(self, db_session, session_factory, monkeypatch):
        # Another request inserts the same identity between our lookup and our insert
        async with session_factory() as other:
            winner = User(
                external_id="google-123",
                display_name="Casey",
                email="casey@example.com",
                refresh_token="first-consent",
            )
            other.add(winner)
            await other.commit()
            winner_id = winner.id

        real_lookup = auth_service.get_user_by_external_id
        lookups = []

        async def lookup_misses_first(db, external_id):
            lookups.append(external_id)
            if len(lookups) == 1:
                return None
            return await real_lookup(db, external_id)

        monkeypatch.setattr(auth_service, "get_user_by_external_id", lookup_misses_first)

        user = await upsert_user(db_session, _profile(display_name="Casey J.", refresh_token=None))

        count = (await db_session.execute(select(func.count(User.id)))).scalar()
        assert count == 1
        assert len(lookups) == 2
        assert user.id == winner_id
        assert user.display_name == "Casey J."
        assert user.refresh_token == "first-consent"
