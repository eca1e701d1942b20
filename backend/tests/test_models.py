"""
Model mixin tests: public uuids and timestamps are filled in on flush.
"""

from uuid import UUID

from sqlalchemy import Uuid

from breviago.models import Acronym, Organization, User


class TestPublicIds:
    def test_uuid_column_on_every_public_model(self):
        for model in (User, Organization, Acronym):
            column = model.__table__.c.uuid
            assert isinstance(column.type, Uuid), model.__name__
            assert column.unique

    async def test_assigned_on_flush(self, db_session):
        alice = User(username="alice", email="alice@example.com", name="alice")
        bob = User(username="bob", email="bob@example.com", name="bob")
        db_session.add_all([alice, bob])
        await db_session.flush()

        assert isinstance(alice.uuid, UUID)
        assert alice.uuid != bob.uuid
        assert alice.created_at is not None
        assert alice.updated_at is not None
        await db_session.rollback()
