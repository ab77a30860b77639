"""Cursor pagination over fixed, already materialised sequences.

A cursor is the base64 of ``{"index": i}`` for a zero-based position in
the sequence. Cursors are only meaningful for the sequence and ordering they
were issued for.
"""

import base64
import binascii
import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from parceltrack.errors import BadRequestError

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20


def encode_cursor(index: int) -> str:
    payload = json.dumps({"index": index}).encode("utf-8")
    return base64.b64encode(payload).decode("ascii")


def decode_cursor(cursor: str) -> int:
    try:
        data = json.loads(base64.b64decode(cursor.encode("ascii"), validate=True))
        index = data["index"]
    except (ValueError, binascii.Error, KeyError, TypeError):
        raise BadRequestError("Invalid cursor") from None

    if not isinstance(index, int) or isinstance(index, bool):
        raise BadRequestError("Invalid cursor")
    return index


@dataclass
class Edge(Generic[T]):
    cursor: str
    node: T


@dataclass
class PageInfo:
    has_next_page: bool
    has_previous_page: bool
    start_cursor: str | None
    end_cursor: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasNextPage": self.has_next_page,
            "hasPreviousPage": self.has_previous_page,
            "startCursor": self.start_cursor,
            "endCursor": self.end_cursor,
        }


@dataclass
class Connection(Generic[T]):
    """One page of a sequence."""

    edges: list[Edge[T]]
    page_info: PageInfo

    def to_dict(self, serialize: Callable[[T], Any] = lambda node: node) -> dict[str, Any]:
        return {
            "edges": [
                {"cursor": edge.cursor, "node": serialize(edge.node)} for edge in self.edges
            ],
            "pageInfo": self.page_info.to_dict(),
        }


class ArrayConnection(Generic[T]):
    """Windowed view over a sequence driven by first/after or last/before.

    ``first``/``after`` pages forward from the start or from a cursor;
    ``last``/``before`` pages backward from the end or from a cursor, with
    the page still in forward order. Arguments are validated here, before
    any item is read, and violations raise BadRequestError. A page size
    above ``limit`` is clamped to ``limit``.
    """

    def __init__(
        self,
        items: Sequence[T],
        first: int | None = None,
        after: str | None = None,
        last: int | None = None,
        before: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ):
        if limit < 1:
            raise ValueError("limit must be greater than 0")

        self.items = items
        self.limit = limit
        self.is_forward = self._init_is_forward(first, last)
        self.size = self._init_size(first if self.is_forward else last)
        self.cursor_index = self._init_cursor(after, before)

    def _init_is_forward(self, first: int | None, last: int | None) -> bool:
        if first is None and last is None:
            raise BadRequestError('Either the "first" or "last" parameter is required.')
        if first is not None and last is not None:
            raise BadRequestError('The "first" and "last" parameters cannot be used together.')
        return first is not None

    def _init_size(self, size: int) -> int:
        if size < 1:
            name = "first" if self.is_forward else "last"
            raise BadRequestError(f'The "{name}" parameter must be greater than 0.')
        return min(size, self.limit)

    def _init_cursor(self, after: str | None, before: str | None) -> int:
        if self.is_forward and before is not None:
            raise BadRequestError('The "before" parameter cannot be used with the "first" parameter.')
        if not self.is_forward and after is not None:
            raise BadRequestError('The "after" parameter cannot be used with the "last" parameter.')

        cursor = after if self.is_forward else before
        if cursor is None:
            # Sentinels: just before the first item, or just after the last.
            return -1 if self.is_forward else len(self.items)
        return decode_cursor(cursor)

    def slice_indices(self) -> tuple[int, int]:
        """Clamped inclusive (start, end) indices; end < start means empty."""
        if self.is_forward:
            start, end = self.cursor_index + 1, self.cursor_index + self.size
        else:
            start, end = self.cursor_index - self.size, self.cursor_index - 1
        return max(start, 0), min(end, len(self.items) - 1)

    def edges(self) -> list[Edge[T]]:
        start, end = self.slice_indices()
        return [Edge(cursor=encode_cursor(i), node=self.items[i]) for i in range(start, end + 1)]

    def page_info(self) -> PageInfo:
        start, end = self.slice_indices()
        return PageInfo(
            has_next_page=end < len(self.items) - 1,
            has_previous_page=start > 0,
            start_cursor=encode_cursor(start),
            end_cursor=encode_cursor(end),
        )

    def connection(self) -> Connection[T]:
        return Connection(edges=self.edges(), page_info=self.page_info())


def validate_page_args(
    first: int | None = None,
    after: str | None = None,
    last: int | None = None,
    before: str | None = None,
) -> None:
    """Check pagination arguments before the sequence is available."""
    ArrayConnection((), first=first, after=after, last=last, before=before)
