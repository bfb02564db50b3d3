from fastapi import status


class MessengerError(Exception):
    """
    Base class for every failure the core reports to its caller.

    Each subclass carries the HTTP status the API layer answers with and a
    default detail message, so the routers never translate errors by hand.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class UnknownUserError(MessengerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "User does not exist"


class UserExistsError(MessengerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "User is already taken"


class InvalidCredentialsError(MessengerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid login or password"


class SelfReferenceError(MessengerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "You cannot add yourself"


class AlreadyContactError(MessengerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This person is in your contact list"


class AlreadyBlockedError(MessengerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This person is on your blocked list"


class NotInListError(MessengerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "User not found in list"


class PermissionDeniedError(MessengerError, PermissionError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to do this"


class UnknownChatError(MessengerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "This chat does not exist"


class NotAMemberError(MessengerError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not a member of this chat"


class DuplicateMemberError(MessengerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "User is already a member of this chat"


class UnknownMessageError(MessengerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "This message does not exist"


class ChatsStillOwnedError(MessengerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "There are still chats not deleted"

    def __init__(self, chat_ids: list[int]):
        self.chat_ids = chat_ids
        super().__init__(f"{self.default_detail}: {', '.join(map(str, chat_ids))}")


class StorageError(MessengerError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage backend failure"
