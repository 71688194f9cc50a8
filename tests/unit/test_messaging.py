"""Unit tests for internal messaging and canonical admin resolution."""

from datetime import timedelta

import pytest

from coachdesk.kernel.errors import AdminNotConfiguredError, ConversationError, NotFoundError
from coachdesk.kernel.messaging import CanonicalAdminResolver, MessageService
from coachdesk.kernel.models import InternalMessage, UserRole
from coachdesk.kernel.models.base import utcnow


@pytest.fixture
def messages(db_session, test_admin) -> MessageService:
    return MessageService(db_session, test_admin.id)


class TestCanonicalAdminResolver:

    async def test_no_admin(self, db_session, test_user):
        with pytest.raises(AdminNotConfiguredError):
            await CanonicalAdminResolver(db_session).resolve()

    async def test_lowest_admin_id_wins(self, db_session, make_user, test_admin):
        await make_user("second-admin@example.com", role=UserRole.ADMIN)

        assert await CanonicalAdminResolver(db_session).resolve() == test_admin.id

    async def test_cached_until_invalidated(self, db_session, make_user):
        resolver = CanonicalAdminResolver(db_session)
        with pytest.raises(AdminNotConfiguredError):
            await resolver.resolve()

        admin = await make_user("admin@example.com", role=UserRole.ADMIN)
        resolver.invalidate()

        assert await resolver.resolve() == admin.id


class TestSend:

    async def test_direction_sets_admin_flag(self, messages, test_admin, test_user):
        to_user = await messages.send(test_admin.id, test_user.id, "  Bonjour  ")
        to_admin = await messages.send(test_user.id, test_admin.id, "Merci")

        assert to_user.is_admin is True
        assert to_user.content == "Bonjour"
        assert to_user.read is False
        assert to_admin.is_admin is False

    async def test_admin_must_be_exactly_one_party(self, messages, make_user, test_admin, test_user):
        other = await make_user("other@example.com")

        with pytest.raises(ConversationError):
            await messages.send(test_user.id, other.id, "hi")
        with pytest.raises(ConversationError):
            await messages.send(test_admin.id, test_admin.id, "hi")

    async def test_unknown_user(self, messages, test_admin):
        with pytest.raises(NotFoundError):
            await messages.send(test_admin.id, 9999, "hi")

    async def test_other_admin_is_not_a_conversation_party(self, messages, make_user, test_admin):
        second_admin = await make_user("second-admin@example.com", role=UserRole.ADMIN)

        with pytest.raises(ConversationError):
            await messages.send(test_admin.id, second_admin.id, "hi")


class TestConversation:

    async def test_pages_are_newest_first_and_disjoint(self, messages, db_session, test_admin, test_user):
        for i in range(45):
            if i % 2:
                await messages.send(test_admin.id, test_user.id, f"admin {i}")
            else:
                await messages.send(test_user.id, test_admin.id, f"user {i}")
        await db_session.commit()

        seen = []
        for offset in (0, 20, 40):
            page, total = await messages.list_conversation(test_user.id, limit=20, offset=offset)
            assert total == 45
            seen.extend(page)

        assert len(seen) == 45
        assert len({m.id for m in seen}) == 45
        assert [m.id for m in seen] == sorted((m.id for m in seen), reverse=True)
        assert seen[0].content == "user 44"

    async def test_conversation_excludes_other_users(self, messages, make_user, test_admin, test_user):
        other = await make_user("other@example.com")
        await messages.send(test_admin.id, other.id, "for other")
        await messages.send(test_admin.id, test_user.id, "for user")

        page, total = await messages.list_conversation(test_user.id)

        assert total == 1
        assert page[0].content == "for user"


class TestReadState:

    async def test_admin_message_unread_until_user_marks_read(self, messages, db_session, test_admin, test_user):
        await messages.send(test_admin.id, test_user.id, "Bonjour")
        await db_session.commit()

        assert await messages.unread_count_for_user(test_user.id) == 1
        assert await messages.unread_count_for_admin() == 0

        assert await messages.mark_read_by_user(test_user.id) == 1
        assert await messages.unread_count_for_user(test_user.id) == 0
        assert await messages.mark_read_by_user(test_user.id) == 0

    async def test_mark_read_only_touches_one_direction(self, messages, db_session, test_admin, test_user):
        await messages.send(test_admin.id, test_user.id, "from admin")
        await messages.send(test_user.id, test_admin.id, "from user")
        await db_session.commit()

        assert await messages.mark_read_by_admin(test_user.id) == 1

        assert await messages.unread_count_for_admin() == 0
        assert await messages.unread_count_for_user(test_user.id) == 1


class TestInbox:

    async def test_ordering(self, messages, db_session, make_user, test_admin):
        unread = await make_user("unread@example.com", last_name="Zola")
        silent = await make_user("silent@example.com", last_name="Adam")
        answered = await make_user("answered@example.com", last_name="Blanc")

        await messages.send(answered.id, test_admin.id, "old question")
        await messages.mark_read_by_admin(answered.id)
        await messages.send(test_admin.id, answered.id, "answer")
        await messages.send(unread.id, test_admin.id, "first")
        await messages.send(unread.id, test_admin.id, "second")
        await db_session.commit()

        inbox = await messages.list_users_with_conversations()

        assert [s.user.id for s in inbox] == [unread.id, answered.id, silent.id]
        assert inbox[0].unread_count == 2
        assert inbox[0].last_admin_message_at is None
        assert inbox[1].unread_count == 0
        assert inbox[1].last_admin_message_read is False
        assert inbox[2].last_message_at is None
        assert inbox[2].unread_count == 0

    async def test_admins_are_not_listed(self, messages, make_user, test_user):
        await make_user("second-admin@example.com", role=UserRole.ADMIN)

        inbox = await messages.list_users_with_conversations()

        assert [s.user.id for s in inbox] == [test_user.id]


class TestDeletion:

    async def test_delete_conversation_removes_both_directions(self, messages, db_session, test_admin, test_user):
        await messages.send(test_admin.id, test_user.id, "a")
        await messages.send(test_user.id, test_admin.id, "b")
        await db_session.commit()

        assert await messages.delete_conversation(test_user.id) == 2
        _, total = await messages.list_conversation(test_user.id)
        assert total == 0

    async def test_delete_single_message(self, messages, db_session, test_admin, test_user):
        message = await messages.send(test_admin.id, test_user.id, "a")
        await db_session.commit()

        assert await messages.delete_message(message.id) is True
        assert await messages.delete_message(message.id) is False


class TestStaleUnread:

    async def test_only_old_unread_admin_messages_count(self, messages, db_session, make_user, test_admin, test_user):
        other = await make_user("other@example.com")
        old = utcnow() - timedelta(hours=50)
        db_session.add_all([
            InternalMessage(sender_id=test_admin.id, receiver_id=test_user.id, content="1",
                            is_admin=True, read=False, created_at=old),
            InternalMessage(sender_id=test_admin.id, receiver_id=test_user.id, content="2",
                            is_admin=True, read=False, created_at=old),
            InternalMessage(sender_id=test_admin.id, receiver_id=other.id, content="3",
                            is_admin=True, read=True, created_at=old),
        ])
        await messages.send(test_admin.id, other.id, "fresh")
        await db_session.commit()

        pending = await messages.unread_admin_messages_older_than(utcnow() - timedelta(hours=48))

        assert [(p.user.id, p.unread_count) for p in pending] == [(test_user.id, 2)]
