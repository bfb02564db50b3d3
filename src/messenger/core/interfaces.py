from typing import Any, Sequence
from abc import ABC, abstractmethod

from sqlalchemy import Executable, Row, Select

from .database import ListKind
from .dto import *


class StoreInterface(ABC):
    @abstractmethod
    async def execute(self, statement: Executable) -> None:
        """
        Executes a statement that returns no rows.
        :param statement:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def query_count(self, statement: Select) -> int:
        """
        Counts the rows a select would return.
        :param statement:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def query_rows(self, statement: Select) -> Sequence[Row]:
        """
        Returns the ordered rows of a select.
        :param statement:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def query_scalar(self, statement: Select) -> Any:
        """
        Returns the single value of a select or None.
        :param statement:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def insert_returning_id(self, statement: Executable) -> int:
        """
        Executes an INSERT ... RETURNING id and gives back the generated key.
        :param statement:
        :return:
        """
        raise NotImplementedError()


class UserInterface(ABC):
    @abstractmethod
    async def register(
            self,
            login: str,
            password: str,
            phone: str | None,
            status: str | None
    ) -> UserDTO:
        """
        Creates a user together with its empty contact and block lists.
        :param login:
        :param password:
        :param phone:
        :param status:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def authenticate(
            self,
            login: str,
            password: str
    ) -> UserDTO:
        """
        Checks credentials of an existing user.
        :param login:
        :param password:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def get_user(
            self,
            login: str
    ) -> UserDTO:
        """
        Get user by User.login
        :param login:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def set_status(
            self,
            login: str,
            status: str | None
    ) -> UserDTO:
        """
        Replaces the status line shown next to the user in other users' lists.
        :param login:
        :param status:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def delete_account(
            self,
            login: str
    ) -> None:
        """
        Deletes a user that no longer initiates any chat.
        :param login:
        :return:
        """
        raise NotImplementedError()


class RelationshipInterface(ABC):
    @abstractmethod
    async def add_contact(self, owner: str, target: str) -> None:
        """
        Adds target to the owner's contact list.
        :param owner:
        :param target:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def add_blocked(self, owner: str, target: str) -> None:
        """
        Adds target to the owner's block list, moving it out of contacts.
        :param owner:
        :param target:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def remove_contact(self, owner: str, target: str) -> None:
        """
        Removes target from the owner's contact list.
        :param owner:
        :param target:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def remove_blocked(self, owner: str, target: str) -> None:
        """
        Removes target from the owner's block list.
        :param owner:
        :param target:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def list_contacts(self, owner: str) -> list[str]:
        """
        Gets the owner's contacts in insertion order.
        :param owner:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def list_blocked(self, owner: str) -> list[str]:
        """
        Gets the owner's blocked users in insertion order.
        :param owner:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def list_entries(self, owner: str, kind: ListKind) -> list[UserDTO]:
        """
        Gets the members of one of the owner's lists with their profiles.
        :param owner:
        :param kind:
        :return:
        """
        raise NotImplementedError()


class ChatInterface(ABC):
    @abstractmethod
    async def create_chat(self, initiator: str) -> int:
        """
        Creates a private chat with the initiator as its only member.
        :param initiator:
        :return: new chat id
        """
        raise NotImplementedError()

    @abstractmethod
    async def add_member(self, actor: str, chat_id: int, new_member: str) -> ChatDTO:
        """
        Adds a member to a chat. Only the initiator may do this.
        :param actor:
        :param chat_id:
        :param new_member:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def delete_chat(self, actor: str, chat_id: int) -> None:
        """
        Deletes a chat with its messages and memberships.
        :param actor:
        :param chat_id:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def list_chats_for(self, login: str) -> list[int]:
        """
        Gets ids of all chats the user belongs to.
        :param login:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def is_member(
            self,
            login: str,
            chat_id: int,
            store: StoreInterface | None = None
    ) -> bool:
        """
        Checks chat membership, inside the caller's transaction when a store is given.
        :param login:
        :param chat_id:
        :param store:
        :return:
        """
        raise NotImplementedError()


class MessageInterface(ABC):
    @abstractmethod
    async def post(self, sender: str, chat_id: int, text: str) -> int:
        """
        Appends a message to a chat the sender belongs to.
        :param sender:
        :param chat_id:
        :param text:
        :return: new message id
        """
        raise NotImplementedError()

    @abstractmethod
    async def edit(self, actor: str, message_id: int, new_text: str) -> MessageDTO:
        """
        Replaces the text of a message owned by actor.
        :param actor:
        :param message_id:
        :param new_text:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def delete(self, actor: str, message_id: int) -> None:
        """
        Deletes a message owned by actor.
        :param actor:
        :param message_id:
        :return:
        """
        raise NotImplementedError()

    @abstractmethod
    async def history(self, chat_id: int, requester: str) -> list[MessageDTO]:
        """
        Gets all messages of a chat, newest first.
        :param chat_id:
        :param requester:
        :return:
        """
        raise NotImplementedError()
