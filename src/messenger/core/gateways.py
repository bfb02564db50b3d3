from datetime import timedelta

from sqlalchemy import select, insert, update, delete, func, or_
from sqlalchemy.exc import IntegrityError
import logging

from .database import User, UserList, ListMember, Chat, ChatMember, Message, ListKind, ChatType, utcnow
from .interfaces import UserInterface, RelationshipInterface, ChatInterface, MessageInterface
from .dto import UserDTO, ChatDTO, MessageDTO, PageDTO, ListId
from .exceptions import *
from .pagination import next_page
from .store import SessionStore
from .db_manager import DatabaseManager


_USER_COLUMNS = (User.login, User.phone, User.status, User.contact_list, User.block_list)
_MESSAGE_COLUMNS = (Message.id, Message.chat_id, Message.sender_login, Message.msg_text, Message.msg_timestamp)


def _to_user_dto(row) -> UserDTO:
    return UserDTO(
        login=row.login,
        phone=row.phone,
        status=row.status,
        contact_list=row.contact_list,
        block_list=row.block_list
    )


def _to_message_dto(row) -> MessageDTO:
    return MessageDTO(
        id=row.id,
        chat_id=row.chat_id,
        sender=row.sender_login,
        text=row.msg_text,
        timestamp=row.msg_timestamp
    )


async def _user_exists(store: SessionStore, login: str) -> bool:
    return await store.query_count(select(User.login).where(User.login == login)) > 0


async def _get_user(store: SessionStore, login: str) -> UserDTO:
    rows = await store.query_rows(select(*_USER_COLUMNS).where(User.login == login))
    if not rows:
        raise UnknownUserError(f"User {login} does not exist")
    return _to_user_dto(rows[0])


async def _list_ids(store: SessionStore, owner: str, lock: bool = False) -> dict[ListKind, ListId]:
    stmt = select(User.contact_list, User.block_list).where(User.login == owner)
    if lock:
        # Row lock on the owner serializes concurrent changes to its lists
        stmt = stmt.with_for_update()
    rows = await store.query_rows(stmt)
    if not rows:
        raise UnknownUserError(f"User {owner} does not exist")
    user = rows[0]
    return {
        ListKind.CONTACT: ListId(user.contact_list),
        ListKind.BLOCK: ListId(user.block_list),
    }


async def _in_list(store: SessionStore, list_id: ListId, member: str) -> bool:
    stmt = select(ListMember.id).where(
        ListMember.list_id == list_id,
        ListMember.list_member == member
    )
    return await store.query_count(stmt) > 0


async def _get_chat(store: SessionStore, chat_id: int, lock: bool = False) -> ChatDTO:
    stmt = select(Chat.id, Chat.chat_type, Chat.init_sender).where(Chat.id == chat_id)
    if lock:
        stmt = stmt.with_for_update()
    rows = await store.query_rows(stmt)
    if not rows:
        raise UnknownChatError(f"Chat {chat_id} does not exist")
    row = rows[0]
    return ChatDTO(id=row.id, chat_type=row.chat_type, initiator=row.init_sender)


async def _is_member(store: SessionStore, login: str, chat_id: int) -> bool:
    stmt = select(ChatMember.id).where(
        ChatMember.chat_id == chat_id,
        ChatMember.member == login
    )
    return await store.query_count(stmt) > 0


async def _get_message(store: SessionStore, message_id: int) -> MessageDTO:
    rows = await store.query_rows(select(*_MESSAGE_COLUMNS).where(Message.id == message_id))
    if not rows:
        raise UnknownMessageError(f"Message {message_id} does not exist")
    return _to_message_dto(rows[0])


class UserGateway(UserInterface):
    __slots__ = ("_db_manager", "_logger")

    def __init__(self, db_manager: DatabaseManager, logger: logging.Logger | None = None):
        self._db_manager = db_manager
        self._logger = logger or logging.getLogger(__name__)

    async def register(
            self,
            login: str,
            password: str,
            phone: str | None = None,
            status: str | None = None
    ) -> UserDTO:
        async with self._db_manager.transaction() as store:
            if await _user_exists(store, login):
                raise UserExistsError(f"User {login} is already taken")

            block_id = await store.insert_returning_id(
                insert(UserList).values(list_type=ListKind.BLOCK).returning(UserList.id)
            )
            contact_id = await store.insert_returning_id(
                insert(UserList).values(list_type=ListKind.CONTACT).returning(UserList.id)
            )
            try:
                await store.execute(
                    insert(User).values(
                        login=login,
                        password=password,
                        phone=phone,
                        status=status,
                        contact_list=contact_id,
                        block_list=block_id
                    )
                )
            except IntegrityError as e:
                # Lost a race against a concurrent registration of the same login
                raise UserExistsError(f"User {login} is already taken") from e

        self._logger.info("User %s registered", login)
        return UserDTO(
            login=login,
            phone=phone,
            status=status,
            contact_list=contact_id,
            block_list=block_id
        )

    async def authenticate(self, login: str, password: str) -> UserDTO:
        async with self._db_manager.transaction() as store:
            rows = await store.query_rows(
                select(*_USER_COLUMNS).where(
                    User.login == login,
                    User.password == password
                )
            )
        if not rows:
            self._logger.info("Failed login attempt for %s", login)
            raise InvalidCredentialsError()
        return _to_user_dto(rows[0])

    async def get_user(self, login: str) -> UserDTO:
        async with self._db_manager.transaction() as store:
            return await _get_user(store, login)

    async def set_status(self, login: str, status: str | None) -> UserDTO:
        async with self._db_manager.transaction() as store:
            await _get_user(store, login)
            await store.execute(update(User).where(User.login == login).values(status=status))
            user = await _get_user(store, login)

        self._logger.info("User %s changed status", login)
        return user

    async def delete_account(self, login: str) -> None:
        async with self._db_manager.transaction() as store:
            user = await _get_user(store, login)

            owned = await store.query_rows(
                select(Chat.id).where(Chat.init_sender == login).order_by(Chat.id)
            )
            if owned:
                raise ChatsStillOwnedError([row.id for row in owned])

            own_lists = [user.contact_list, user.block_list]
            await store.execute(delete(Message).where(Message.sender_login == login))
            await store.execute(delete(ChatMember).where(ChatMember.member == login))
            await store.execute(
                delete(ListMember).where(
                    or_(
                        ListMember.list_member == login,
                        ListMember.list_id.in_(own_lists)
                    )
                )
            )
            await store.execute(delete(User).where(User.login == login))
            await store.execute(delete(UserList).where(UserList.id.in_(own_lists)))

        self._logger.info("User %s deleted", login)


class RelationshipGateway(RelationshipInterface):
    """
    Contact and block lists of a user.

    A member sits in at most one of its owner's two lists. Blocking a contact
    moves it to the block list in one step; adding a blocked user as contact
    is refused until it is removed from the block list.
    """
    __slots__ = ("_db_manager", "_logger")

    def __init__(self, db_manager: DatabaseManager, logger: logging.Logger | None = None):
        self._db_manager = db_manager
        self._logger = logger or logging.getLogger(__name__)

    async def add_contact(self, owner: str, target: str) -> None:
        if owner == target:
            raise SelfReferenceError("You cannot add yourself")

        async with self._db_manager.transaction() as store:
            lists = await _list_ids(store, owner, lock=True)
            if not await _user_exists(store, target):
                raise UnknownUserError(f"User {target} does not exist")

            if await _in_list(store, lists[ListKind.BLOCK], target):
                raise AlreadyBlockedError(
                    f"{target} is on your blocked list, remove it from there first"
                )
            if await _in_list(store, lists[ListKind.CONTACT], target):
                raise AlreadyContactError(f"{target} is already in your contact list")

            try:
                await store.execute(
                    insert(ListMember).values(list_id=lists[ListKind.CONTACT], list_member=target)
                )
            except IntegrityError as e:
                raise AlreadyContactError(f"{target} is already in your contact list") from e

        self._logger.info("%s added %s to contacts", owner, target)

    async def add_blocked(self, owner: str, target: str) -> None:
        if owner == target:
            raise SelfReferenceError("You cannot block yourself")

        async with self._db_manager.transaction() as store:
            lists = await _list_ids(store, owner, lock=True)
            if not await _user_exists(store, target):
                raise UnknownUserError(f"User {target} does not exist")

            contact_list, block_list = lists[ListKind.CONTACT], lists[ListKind.BLOCK]
            if await _in_list(store, contact_list, target):
                await store.execute(
                    delete(ListMember).where(
                        ListMember.list_id == contact_list,
                        ListMember.list_member == target
                    )
                )
                self._logger.debug("%s moved out of %s's contacts", target, owner)
            elif await _in_list(store, block_list, target):
                raise AlreadyBlockedError(f"{target} is already on your blocked list")

            try:
                await store.execute(
                    insert(ListMember).values(list_id=block_list, list_member=target)
                )
            except IntegrityError as e:
                raise AlreadyBlockedError(f"{target} is already on your blocked list") from e

        self._logger.info("%s blocked %s", owner, target)

    async def remove_contact(self, owner: str, target: str) -> None:
        await self._remove(owner, target, ListKind.CONTACT)

    async def remove_blocked(self, owner: str, target: str) -> None:
        await self._remove(owner, target, ListKind.BLOCK)

    async def list_contacts(self, owner: str) -> list[str]:
        return [user.login for user in await self.list_entries(owner, ListKind.CONTACT)]

    async def list_blocked(self, owner: str) -> list[str]:
        return [user.login for user in await self.list_entries(owner, ListKind.BLOCK)]

    async def list_entries(self, owner: str, kind: ListKind) -> list[UserDTO]:
        """Members of one of the owner's lists with their profile, oldest entry first."""
        async with self._db_manager.transaction() as store:
            list_id = (await _list_ids(store, owner))[kind]
            rows = await store.query_rows(
                select(*_USER_COLUMNS)
                .join(ListMember, ListMember.list_member == User.login)
                .where(ListMember.list_id == list_id)
                .order_by(ListMember.id)
            )
        return [_to_user_dto(row) for row in rows]

    async def _remove(self, owner: str, target: str, kind: ListKind) -> None:
        async with self._db_manager.transaction() as store:
            list_id = (await _list_ids(store, owner, lock=True))[kind]
            if not await _in_list(store, list_id, target):
                raise NotInListError(f"{target} not found in your {kind.value} list")

            await store.execute(
                delete(ListMember).where(
                    ListMember.list_id == list_id,
                    ListMember.list_member == target
                )
            )

        self._logger.info("%s removed %s from %s list", owner, target, kind.value)



class ChatGateway(ChatInterface):
    """
    Chats, their members and their lifecycle.

    A chat starts private with its initiator as the only member and becomes a
    group once it holds three members. Only the initiator adds members or
    deletes the chat.
    """
    __slots__ = ("_db_manager", "_logger")

    GROUP_THRESHOLD = 3

    def __init__(self, db_manager: DatabaseManager, logger: logging.Logger | None = None):
        self._db_manager = db_manager
        self._logger = logger or logging.getLogger(__name__)

    async def create_chat(self, initiator: str) -> int:
        async with self._db_manager.transaction() as store:
            if not await _user_exists(store, initiator):
                raise UnknownUserError(f"User {initiator} does not exist")

            chat_id = await store.insert_returning_id(
                insert(Chat).values(
                    chat_type=ChatType.PRIVATE,
                    init_sender=initiator
                ).returning(Chat.id)
            )
            await store.execute(insert(ChatMember).values(chat_id=chat_id, member=initiator))

        self._logger.info("Chat %d created by %s", chat_id, initiator)
        return chat_id

    async def add_member(self, actor: str, chat_id: int, new_member: str) -> ChatDTO:
        async with self._db_manager.transaction() as store:
            chat = await _get_chat(store, chat_id, lock=True)
            if chat.initiator != actor:
                raise PermissionDeniedError("You are not the initial sender of this chat")
            if not await _user_exists(store, new_member):
                raise UnknownUserError(f"User {new_member} does not exist")
            if await _is_member(store, new_member, chat_id):
                raise DuplicateMemberError(f"{new_member} is already a member of chat {chat_id}")

            try:
                await store.execute(insert(ChatMember).values(chat_id=chat_id, member=new_member))
            except IntegrityError as e:
                raise DuplicateMemberError(f"{new_member} is already a member of chat {chat_id}") from e

            if chat.chat_type is ChatType.PRIVATE:
                members = await store.query_count(
                    select(ChatMember.id).where(ChatMember.chat_id == chat_id)
                )
                if members >= self.GROUP_THRESHOLD:
                    await store.execute(
                        update(Chat).where(Chat.id == chat_id).values(chat_type=ChatType.GROUP)
                    )
                    chat = chat.model_copy(update={"chat_type": ChatType.GROUP})
                    self._logger.info("Chat %d is now a group chat", chat_id)

        self._logger.info("%s added %s to chat %d", actor, new_member, chat_id)
        return chat

    async def delete_chat(self, actor: str, chat_id: int) -> None:
        async with self._db_manager.transaction() as store:
            chat = await _get_chat(store, chat_id, lock=True)
            if chat.initiator != actor:
                raise PermissionDeniedError("You cannot delete this chat")

            await store.execute(delete(Message).where(Message.chat_id == chat_id))
            await store.execute(delete(ChatMember).where(ChatMember.chat_id == chat_id))
            await store.execute(delete(Chat).where(Chat.id == chat_id))

        self._logger.info("Chat %d deleted by %s", chat_id, actor)

    async def list_chats_for(self, login: str) -> list[int]:
        async with self._db_manager.transaction() as store:
            rows = await store.query_rows(
                select(ChatMember.chat_id)
                .where(ChatMember.member == login)
                .order_by(ChatMember.chat_id)
            )
        return [row.chat_id for row in rows]

    async def is_member(self, login: str, chat_id: int, store: SessionStore | None = None) -> bool:
        if store is not None:
            return await _is_member(store, login, chat_id)
        async with self._db_manager.transaction() as store:
            return await _is_member(store, login, chat_id)

    async def get_chat(self, chat_id: int) -> ChatDTO:
        async with self._db_manager.transaction() as store:
            return await _get_chat(store, chat_id)

    async def list_members(self, chat_id: int) -> list[str]:
        async with self._db_manager.transaction() as store:
            await _get_chat(store, chat_id)
            rows = await store.query_rows(
                select(ChatMember.member)
                .where(ChatMember.chat_id == chat_id)
                .order_by(ChatMember.id)
            )
        return [row.member for row in rows]


class MessageGateway(MessageInterface):
    __slots__ = ("_db_manager", "_chats", "_logger")

    def __init__(
            self,
            db_manager: DatabaseManager,
            chats: ChatGateway,
            logger: logging.Logger | None = None
    ):
        self._db_manager = db_manager
        self._chats = chats
        self._logger = logger or logging.getLogger(__name__)

    async def post(self, sender: str, chat_id: int, text: str) -> int:
        async with self._db_manager.transaction() as store:
            if not await self._chats.is_member(sender, chat_id, store):
                raise NotAMemberError(f"You are not a member of chat {chat_id}")

            # Keep timestamps strictly increasing within a chat
            timestamp = utcnow()
            latest = await store.query_scalar(
                select(func.max(Message.msg_timestamp)).where(Message.chat_id == chat_id)
            )
            if latest is not None and timestamp <= latest:
                timestamp = latest + timedelta(microseconds=1)

            message_id = await store.insert_returning_id(
                insert(Message).values(
                    msg_text=text,
                    msg_timestamp=timestamp,
                    sender_login=sender,
                    chat_id=chat_id
                ).returning(Message.id)
            )

        self._logger.info("Message %d posted to chat %d by %s", message_id, chat_id, sender)
        return message_id

    async def edit(self, actor: str, message_id: int, new_text: str) -> MessageDTO:
        async with self._db_manager.transaction() as store:
            message = await self._owned_message(store, actor, message_id)
            await store.execute(
                update(Message).where(Message.id == message_id).values(msg_text=new_text)
            )

        self._logger.info("Message %d edited by %s", message_id, actor)
        return message.model_copy(update={"text": new_text})

    async def delete(self, actor: str, message_id: int) -> None:
        async with self._db_manager.transaction() as store:
            await self._owned_message(store, actor, message_id)
            await store.execute(delete(Message).where(Message.id == message_id))

        self._logger.info("Message %d deleted by %s", message_id, actor)

    async def history(self, chat_id: int, requester: str) -> list[MessageDTO]:
        async with self._db_manager.transaction() as store:
            if not await self._chats.is_member(requester, chat_id, store):
                raise NotAMemberError(
                    f"Chat {chat_id} does not exist or you do not belong to it"
                )
            rows = await store.query_rows(
                select(*_MESSAGE_COLUMNS)
                .where(Message.chat_id == chat_id)
                .order_by(Message.msg_timestamp.desc(), Message.id.desc())
            )
        return [_to_message_dto(row) for row in rows]

    async def history_page(self, chat_id: int, requester: str, offset: int = 0) -> PageDTO:
        return next_page(await self.history(chat_id, requester), offset)

    async def get_message(self, message_id: int) -> MessageDTO:
        async with self._db_manager.transaction() as store:
            return await _get_message(store, message_id)

    @staticmethod
    async def _owned_message(store: SessionStore, actor: str, message_id: int) -> MessageDTO:
        message = await _get_message(store, message_id)
        if message.sender != actor:
            raise PermissionDeniedError("You are not the sender of this message")
        return message
