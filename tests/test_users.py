"""
Tests for registration, login and account deletion.
"""

import pytest
from sqlalchemy import select

from messenger.core.database import User, UserList, ListMember, ChatMember, Message, ListKind
from messenger.core.exceptions import (
    UserExistsError,
    InvalidCredentialsError,
    UnknownUserError,
    ChatsStillOwnedError,
)


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_provisions_both_lists(self, users, db_manager):
        """A new user owns one empty contact list and one empty block list."""
        user = await users.register("alice", "secret", "+15550100")

        assert user.login == "alice"
        assert user.contact_list != user.block_list

        async with db_manager.transaction() as store:
            kinds = await store.query_rows(
                select(UserList.id, UserList.list_type).order_by(UserList.id)
            )
            members = await store.query_count(select(ListMember.id))

        assert {row.id: row.list_type for row in kinds} == {
            user.block_list: ListKind.BLOCK,
            user.contact_list: ListKind.CONTACT,
        }
        assert members == 0

    @pytest.mark.asyncio
    async def test_duplicate_login_rejected(self, users, db_manager):
        await users.register("alice", "secret", None)

        with pytest.raises(UserExistsError):
            await users.register("alice", "other", None)

        # The failed attempt must not leave stray lists behind
        async with db_manager.transaction() as store:
            assert await store.query_count(select(UserList.id)) == 2

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, users):
        with pytest.raises(UnknownUserError):
            await users.get_user("nobody")


class TestStatus:
    @pytest.mark.asyncio
    async def test_status_given_at_registration(self, users):
        await users.register("alice", "secret", None, "hello there")

        assert (await users.get_user("alice")).status == "hello there"

    @pytest.mark.asyncio
    async def test_set_and_clear_status(self, users, registered):
        assert (await users.get_user("bob")).status is None

        updated = await users.set_status("bob", "busy")
        assert updated.status == "busy"
        assert (await users.authenticate("bob", "secret")).status == "busy"

        await users.set_status("bob", None)
        assert (await users.get_user("bob")).status is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, users):
        with pytest.raises(UnknownUserError):
            await users.set_status("nobody", "hi")


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_matching_credentials(self, users, registered):
        user = await users.authenticate("alice", "secret")
        assert user.login == "alice"

    @pytest.mark.asyncio
    async def test_wrong_password(self, users, registered):
        with pytest.raises(InvalidCredentialsError):
            await users.authenticate("alice", "wrong")

    @pytest.mark.asyncio
    async def test_unknown_login(self, users, registered):
        with pytest.raises(InvalidCredentialsError):
            await users.authenticate("mallory", "secret")


class TestDeleteAccount:
    @pytest.mark.asyncio
    async def test_refused_while_initiating_chats(self, users, chats, registered):
        first = await chats.create_chat("alice")
        second = await chats.create_chat("alice")

        with pytest.raises(ChatsStillOwnedError) as exc_info:
            await users.delete_account("alice")

        assert exc_info.value.chat_ids == [first, second]
        assert (await users.get_user("alice")).login == "alice"

    @pytest.mark.asyncio
    async def test_removes_every_trace(self, users, relationships, chats, messages, registered, db_manager):
        chat_id = await chats.create_chat("bob")
        await chats.add_member("bob", chat_id, "alice")
        await messages.post("alice", chat_id, "bye everyone")
        await relationships.add_contact("alice", "carol")
        await relationships.add_blocked("bob", "alice")
        alice = await users.get_user("alice")

        await users.delete_account("alice")

        with pytest.raises(UnknownUserError):
            await users.get_user("alice")
        assert await relationships.list_blocked("bob") == []
        assert await chats.list_members(chat_id) == ["bob"]

        async with db_manager.transaction() as store:
            assert await store.query_count(select(Message.id).where(Message.sender_login == "alice")) == 0
            assert await store.query_count(select(ChatMember.id).where(ChatMember.member == "alice")) == 0
            assert await store.query_count(
                select(UserList.id).where(UserList.id.in_([alice.contact_list, alice.block_list]))
            ) == 0
            assert await store.query_count(select(User.login).where(User.login == "alice")) == 0

    @pytest.mark.asyncio
    async def test_login_can_be_reused_after_deletion(self, users, registered):
        await users.delete_account("dave")
        user = await users.register("dave", "new-secret", None)

        assert user.login == "dave"

    @pytest.mark.asyncio
    async def test_unknown_user(self, users):
        with pytest.raises(UnknownUserError):
            await users.delete_account("nobody")
