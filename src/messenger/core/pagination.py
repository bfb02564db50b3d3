from typing import Sequence

from .dto import MessageDTO, PageDTO

PAGE_SIZE = 10


def next_page(items: Sequence[MessageDTO], offset: int = 0, page_size: int = PAGE_SIZE) -> PageDTO:
    """
    Cut one window out of an already ordered history.

    Nothing is remembered between calls: the caller fetches the history again
    and passes the offset it got back as next_offset.
    :param items: full history, newest first
    :param offset: index of the first item of the page
    :param page_size:
    :return:
    """
    if offset < 0:
        raise ValueError("offset must not be negative")
    if page_size < 1:
        raise ValueError("page_size must be positive")

    end = min(offset + page_size, len(items))
    exhausted = offset + page_size >= len(items)

    return PageDTO(
        items=list(items[offset:end]),
        offset=offset,
        next_offset=None if exhausted else end,
        exhausted=exhausted
    )
