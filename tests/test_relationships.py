"""
Tests for contact and block lists.

Tests cover:
- Adding contacts and blocked users, with every refusal case
- Blocking a contact moves it in one step
- Removal, including repeated removal
- Mutual exclusivity after every mutating operation
- Atomicity of the block-with-move sequence
- Concurrent changes to the same owner's lists
"""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from messenger.core import gateways
from messenger.core.database import ListKind

from messenger.core.exceptions import (
    SelfReferenceError,
    UnknownUserError,
    AlreadyContactError,
    AlreadyBlockedError,
    NotInListError,
    StorageError,
)
from messenger.core.store import SessionStore


async def assert_exclusive(relationships, owner: str):
    """Nobody may be a contact and blocked at the same time."""
    contacts = set(await relationships.list_contacts(owner))
    blocked = set(await relationships.list_blocked(owner))
    assert not contacts & blocked


class TestAddContact:
    @pytest.mark.asyncio
    async def test_add_contact(self, relationships, registered):
        await relationships.add_contact("alice", "bob")

        assert await relationships.list_contacts("alice") == ["bob"]
        assert await relationships.list_contacts("bob") == []
        await assert_exclusive(relationships, "alice")

    @pytest.mark.asyncio
    async def test_insertion_order_is_kept(self, relationships, registered):
        for login in ("dave", "bob", "carol"):
            await relationships.add_contact("alice", login)

        assert await relationships.list_contacts("alice") == ["dave", "bob", "carol"]

    @pytest.mark.asyncio
    async def test_self_reference(self, relationships, registered):
        with pytest.raises(SelfReferenceError):
            await relationships.add_contact("alice", "alice")

    @pytest.mark.asyncio
    async def test_unknown_target(self, relationships, registered):
        with pytest.raises(UnknownUserError):
            await relationships.add_contact("alice", "mallory")

    @pytest.mark.asyncio
    async def test_already_contact(self, relationships, registered):
        await relationships.add_contact("alice", "bob")

        with pytest.raises(AlreadyContactError):
            await relationships.add_contact("alice", "bob")
        assert await relationships.list_contacts("alice") == ["bob"]

    @pytest.mark.asyncio
    async def test_blocked_user_is_not_moved_back(self, relationships, registered):
        """Contacting does not override blocking: the caller must unblock first."""
        await relationships.add_blocked("alice", "bob")

        with pytest.raises(AlreadyBlockedError):
            await relationships.add_contact("alice", "bob")

        assert await relationships.list_contacts("alice") == []
        assert await relationships.list_blocked("alice") == ["bob"]

    @pytest.mark.asyncio
    async def test_other_owners_block_does_not_interfere(self, relationships, registered):
        await relationships.add_blocked("carol", "bob")

        await relationships.add_contact("alice", "bob")

        assert await relationships.list_contacts("alice") == ["bob"]


class TestAddBlocked:
    @pytest.mark.asyncio
    async def test_block_stranger(self, relationships, registered):
        await relationships.add_blocked("alice", "bob")

        assert await relationships.list_blocked("alice") == ["bob"]
        await assert_exclusive(relationships, "alice")

    @pytest.mark.asyncio
    async def test_block_contact_moves_it(self, relationships, registered):
        await relationships.add_contact("alice", "bob")
        await relationships.add_contact("alice", "carol")

        await relationships.add_blocked("alice", "bob")

        assert await relationships.list_contacts("alice") == ["carol"]
        assert await relationships.list_blocked("alice") == ["bob"]
        await assert_exclusive(relationships, "alice")

    @pytest.mark.asyncio
    async def test_already_blocked(self, relationships, registered):
        await relationships.add_blocked("alice", "bob")

        with pytest.raises(AlreadyBlockedError):
            await relationships.add_blocked("alice", "bob")

    @pytest.mark.asyncio
    async def test_self_reference(self, relationships, registered):
        with pytest.raises(SelfReferenceError):
            await relationships.add_blocked("alice", "alice")

    @pytest.mark.asyncio
    async def test_unknown_target(self, relationships, registered):
        with pytest.raises(UnknownUserError):
            await relationships.add_blocked("alice", "mallory")

    @pytest.mark.asyncio
    async def test_move_is_atomic(self, relationships, registered, monkeypatch):
        """If the insert into the block list fails, the contact is not lost."""
        await relationships.add_contact("alice", "bob")

        original_execute = SessionStore.execute
        calls = []

        async def failing_execute(self, statement):
            calls.append(statement)
            if len(calls) == 2:
                raise OperationalError("INSERT INTO list_members", {}, Exception("disk I/O error"))
            await original_execute(self, statement)

        monkeypatch.setattr(SessionStore, "execute", failing_execute)
        with pytest.raises(StorageError):
            await relationships.add_blocked("alice", "bob")
        monkeypatch.undo()

        assert await relationships.list_contacts("alice") == ["bob"]
        assert await relationships.list_blocked("alice") == []


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_contact(self, relationships, registered):
        await relationships.add_contact("alice", "bob")

        await relationships.remove_contact("alice", "bob")

        assert await relationships.list_contacts("alice") == []

    @pytest.mark.asyncio
    async def test_repeated_remove_fails(self, relationships, registered):
        await relationships.add_contact("alice", "bob")
        await relationships.remove_contact("alice", "bob")

        with pytest.raises(NotInListError):
            await relationships.remove_contact("alice", "bob")

    @pytest.mark.asyncio
    async def test_remove_blocked(self, relationships, registered):
        await relationships.add_blocked("alice", "bob")

        await relationships.remove_blocked("alice", "bob")

        assert await relationships.list_blocked("alice") == []
        with pytest.raises(NotInListError):
            await relationships.remove_blocked("alice", "bob")

    @pytest.mark.asyncio
    async def test_remove_contact_does_not_touch_block_list(self, relationships, registered):
        await relationships.add_blocked("alice", "bob")

        with pytest.raises(NotInListError):
            await relationships.remove_contact("alice", "bob")
        assert await relationships.list_blocked("alice") == ["bob"]

    @pytest.mark.asyncio
    async def test_unblock_then_contact(self, relationships, registered):
        await relationships.add_blocked("alice", "bob")
        await relationships.remove_blocked("alice", "bob")

        await relationships.add_contact("alice", "bob")

        assert await relationships.list_contacts("alice") == ["bob"]
        await assert_exclusive(relationships, "alice")


@pytest.mark.asyncio
async def test_exclusivity_holds_through_mixed_sequence(relationships, registered):
    steps = [
        ("add_contact", "bob"),
        ("add_contact", "carol"),
        ("add_blocked", "bob"),
        ("add_blocked", "dave"),
        ("remove_blocked", "bob"),
        ("add_contact", "bob"),
        ("add_blocked", "carol"),
    ]
    for operation, target in steps:
        await getattr(relationships, operation)("alice", target)
        await assert_exclusive(relationships, "alice")

    assert await relationships.list_contacts("alice") == ["bob"]
    assert await relationships.list_blocked("alice") == ["dave", "carol"]


async def _never_listed(store, list_id, member):
    return False


class TestConcurrentChanges:
    @pytest.mark.asyncio
    async def test_contact_and_block_racing(self, relationships, registered):
        results = await asyncio.gather(
            relationships.add_contact("alice", "bob"),
            relationships.add_blocked("alice", "bob"),
            return_exceptions=True,
        )

        # Either order ends with bob blocked: contact-then-block moves him,
        # block-then-contact refuses the contact
        for result in results:
            assert result is None or isinstance(result, AlreadyBlockedError)
        assert await relationships.list_contacts("alice") == []
        assert await relationships.list_blocked("alice") == ["bob"]

    @pytest.mark.asyncio
    async def test_duplicate_contacts_racing(self, relationships, registered):
        results = await asyncio.gather(
            relationships.add_contact("alice", "bob"),
            relationships.add_contact("alice", "bob"),
            return_exceptions=True,
        )

        assert sorted(type(result).__name__ for result in results) == ["AlreadyContactError", "NoneType"]
        assert await relationships.list_contacts("alice") == ["bob"]

    @pytest.mark.asyncio
    async def test_unique_violation_maps_to_already_contact(self, relationships, registered, monkeypatch):
        await relationships.add_contact("alice", "bob")
        monkeypatch.setattr(gateways, "_in_list", _never_listed)

        with pytest.raises(AlreadyContactError):
            await relationships.add_contact("alice", "bob")

    @pytest.mark.asyncio
    async def test_unique_violation_maps_to_already_blocked(self, relationships, registered, monkeypatch):
        await relationships.add_blocked("alice", "bob")
        monkeypatch.setattr(gateways, "_in_list", _never_listed)

        with pytest.raises(AlreadyBlockedError):
            await relationships.add_blocked("alice", "bob")


@pytest.mark.asyncio
async def test_list_entries_carry_member_status(relationships, users, registered):
    await users.set_status("bob", "on holiday")
    await relationships.add_contact("alice", "bob")
    await relationships.add_contact("alice", "carol")

    entries = await relationships.list_entries("alice", ListKind.CONTACT)

    assert [(user.login, user.status) for user in entries] == [("bob", "on holiday"), ("carol", None)]
    assert await relationships.list_entries("alice", ListKind.BLOCK) == []
