import unittest
from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

from social_service.application.services import MessageService
from social_service.domain.exceptions import ValidationError, NotFoundError, InternalError
from tests.fakes import (
    FrozenClock,
    InMemoryDatabase,
    FakeUserRepository,
    FakeMessageRepository,
)


class MessageServiceTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.db = InMemoryDatabase()
        self.clock = FrozenClock()
        self.messages = FakeMessageRepository(self.db)
        self.service = MessageService(self.messages, clock=self.clock)
        self.owner = await FakeUserRepository(self.db).create(
            username="alice", email="alice@example.com", password_hash="hash"
        )

    async def _create(self, content="hi", ttl_seconds=None):
        return await self.service.create_message(
            owner_id=self.owner.id, content=content, ttl_seconds=ttl_seconds
        )


class TestCreateMessage(MessageServiceTestCase):

    async def test_ttl_becomes_absolute_expiry(self):
        message = await self._create(ttl_seconds=3600)
        self.assertEqual(message.expires_at, self.clock.now + timedelta(seconds=3600))
        self.assertEqual(message.owner.username, "alice")

    async def test_without_ttl_never_expires(self):
        for ttl in (None, 0):
            with self.subTest(ttl=ttl):
                message = await self._create(ttl_seconds=ttl)
                self.assertIsNone(message.expires_at)

    async def test_out_of_range_ttl_is_rejected(self):
        with self.assertRaises(ValidationError):
            await self._create(ttl_seconds=10 ** 12)
        self.assertEqual(self.db.messages, {})

    async def test_database_failure(self):
        self.db.fail = True
        with self.assertRaises(InternalError):
            await self._create()


class TestListAndGet(MessageServiceTestCase):

    async def test_list_hides_expired_messages(self):
        keep = await self._create(content="forever")
        hour = await self._create(content="hour", ttl_seconds=3600)

        self.assertEqual({m.id for m in await self.service.list_messages()}, {keep.id, hour.id})

        self.clock.advance(seconds=3600)
        self.assertEqual([m.id for m in await self.service.list_messages()], [keep.id])

    async def test_get_still_returns_expired_message(self):
        message = await self._create(content="hi", ttl_seconds=1)
        self.clock.advance(seconds=2)

        self.assertNotIn(message.id, [m.id for m in await self.service.list_messages()])
        found = await self.service.get_message(message.id)
        self.assertEqual(found.content, "hi")

    async def test_get_missing(self):
        with self.assertRaises(NotFoundError):
            await self.service.get_message(uuid4())


class TestUpdateMessage(MessageServiceTestCase):

    async def test_update_content_keeps_expiry(self):
        message = await self._create(ttl_seconds=60)
        updated = await self.service.update_message(message.id, {"content": "edited"})

        self.assertEqual(updated.content, "edited")
        self.assertEqual(updated.expires_at, message.expires_at)

    async def test_new_ttl_counts_from_now(self):
        message = await self._create(ttl_seconds=60)
        self.clock.advance(seconds=30)

        updated = await self.service.update_message(message.id, {"ttl_seconds": 120})

        self.assertEqual(updated.expires_at, self.clock.now + timedelta(seconds=120))

    async def test_zero_ttl_clears_expiry(self):
        message = await self._create(ttl_seconds=60)
        updated = await self.service.update_message(message.id, {"ttl_seconds": 0})
        self.assertIsNone(updated.expires_at)

    async def test_out_of_range_ttl_update_is_rejected(self):
        message = await self._create(ttl_seconds=60)
        with self.assertRaises(ValidationError):
            await self.service.update_message(message.id, {"ttl_seconds": 10 ** 12})
        found = await self.service.get_message(message.id)
        self.assertEqual(found.expires_at, message.expires_at)

    async def test_update_missing(self):
        with self.assertRaises(NotFoundError):
            await self.service.update_message(uuid4(), {"content": "x"})

    async def test_update_needs_fields(self):
        message = await self._create()
        with self.assertRaises(ValidationError):
            await self.service.update_message(message.id, {})

    async def test_unexpected_failure(self):
        self.messages.update = AsyncMock(side_effect=RuntimeError("boom"))
        with self.assertRaises(InternalError):
            await self.service.update_message(uuid4(), {"content": "x"})


class TestDeleteMessage(MessageServiceTestCase):

    async def test_delete(self):
        message = await self._create()
        self.assertEqual(await self.service.delete_message(message.id), {"deleted": True})
        with self.assertRaises(NotFoundError):
            await self.service.get_message(message.id)

    async def test_delete_missing(self):
        with self.assertRaises(NotFoundError):
            await self.service.delete_message(uuid4())


if __name__ == "__main__":
    unittest.main()
