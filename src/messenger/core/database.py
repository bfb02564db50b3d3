from sqlalchemy import ForeignKey, String, Text, DateTime, Index, UniqueConstraint, Enum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import List, Optional


def utcnow() -> datetime:
    # Naive UTC, SQLite drops tzinfo on the way back
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ListKind(str, PyEnum):
    CONTACT = "contact"
    BLOCK = "block"


class ChatType(str, PyEnum):
    PRIVATE = "private"
    GROUP = "group"


class Base(DeclarativeBase):
    pass


class UserList(Base):
    __tablename__ = "user_lists"

    id: Mapped[int] = mapped_column(primary_key=True)
    list_type: Mapped[ListKind] = mapped_column(Enum(ListKind, name="list_kind"))

    members: Mapped[List["ListMember"]] = relationship(
        "ListMember",
        back_populates="user_list"
    )


class User(Base):
    __tablename__ = "users"

    login: Mapped[str] = mapped_column(String(50), primary_key=True)
    password: Mapped[str] = mapped_column(String(50))
    phone: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(140), nullable=True)
    contact_list: Mapped[int] = mapped_column(ForeignKey("user_lists.id"), unique=True)
    block_list: Mapped[int] = mapped_column(ForeignKey("user_lists.id"), unique=True)

    sent_messages: Mapped[List["Message"]] = relationship(
        "Message",
        back_populates="sender"
    )
    initiated_chats: Mapped[List["Chat"]] = relationship(
        "Chat",
        back_populates="initiator"
    )


class ListMember(Base):
    __tablename__ = "list_members"

    # Autoincrement id doubles as insertion order
    id: Mapped[int] = mapped_column(primary_key=True)
    list_id: Mapped[int] = mapped_column(ForeignKey("user_lists.id"))
    list_member: Mapped[str] = mapped_column(ForeignKey("users.login"))

    user_list: Mapped["UserList"] = relationship(
        "UserList",
        back_populates="members"
    )

    __table_args__ = (
        UniqueConstraint('list_id', 'list_member', name='uq_list_member'),
    )


class Chat(Base):
    __tablename__ = "chats"

    id: Mapped[int] = mapped_column(primary_key=True)
    chat_type: Mapped[ChatType] = mapped_column(
        Enum(ChatType, name="chat_type"),
        default=ChatType.PRIVATE
    )
    init_sender: Mapped[str] = mapped_column(ForeignKey("users.login"), index=True)

    initiator: Mapped["User"] = relationship(
        "User",
        back_populates="initiated_chats"
    )
    members: Mapped[List["ChatMember"]] = relationship(
        "ChatMember",
        back_populates="chat"
    )
    messages: Mapped[List["Message"]] = relationship(
        "Message",
        back_populates="chat"
    )


class ChatMember(Base):
    __tablename__ = "chat_members"

    id: Mapped[int] = mapped_column(primary_key=True)
    chat_id: Mapped[int] = mapped_column(ForeignKey("chats.id"))
    member: Mapped[str] = mapped_column(ForeignKey("users.login"), index=True)

    chat: Mapped["Chat"] = relationship(
        "Chat",
        back_populates="members"
    )

    __table_args__ = (
        UniqueConstraint('chat_id', 'member', name='uq_chat_member'),
    )


class Message(Base):
    __tablename__ = "messages"

    __table_args__ = (
        Index('ix_messages_chat_timestamp', 'chat_id', 'msg_timestamp'),
        Index('ix_messages_sender', 'sender_login'),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    msg_text: Mapped[str] = mapped_column(Text)
    msg_timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    sender_login: Mapped[str] = mapped_column(ForeignKey("users.login"))
    chat_id: Mapped[int] = mapped_column(ForeignKey("chats.id"))

    sender: Mapped["User"] = relationship(
        "User",
        back_populates="sent_messages"
    )
    chat: Mapped["Chat"] = relationship(
        "Chat",
        back_populates="messages"
    )
