"""
Cursor pagination over `created_at`.

Pages are ordered newest first. A page token is the URL-safe base64 form of
the RFC 3339 timestamp (nanosecond precision) of the last row of the previous
page, and the next page holds the rows strictly older than it.
"""

import base64, binascii, re
from datetime import datetime, timedelta, timezone
from typing import Any
from sqlalchemy import DateTime, literal
from sqlalchemy.orm import Query

from fleet.src import exceptions
from fleet.src.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from fleet.src.filters import passThrough

RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d{1,9}))?([Zz]|[+-]\d{2}:\d{2})$"
)


def asUTC(value: datetime) -> datetime:
    """Naive timestamps are read back from storage in UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def encodePageToken(createdAt: datetime) -> str:
    """
    Encode a timestamp as an opaque page token.

    The timestamp is converted to UTC and written as
    `YYYY-MM-DDTHH:MM:SS.nnnnnnnnnZ` before encoding.
    """
    t = asUTC(createdAt)
    text = (
        f"{t.year:04d}-{t.month:02d}-{t.day:02d}"
        f"T{t.hour:02d}:{t.minute:02d}:{t.second:02d}.{t.microsecond:06d}000Z"
    )
    return base64.urlsafe_b64encode(text.encode("ascii")).decode("ascii")


def decodePageToken(token: str) -> datetime:
    """
    Decode a page token back into the timestamp it carries.

    Raises:
        exceptions.InvalidPageToken: If the token is not base64 or does not
            hold an RFC 3339 timestamp.
    """
    try:
        text = base64.urlsafe_b64decode(token.encode("ascii")).decode("ascii")
    except (binascii.Error, UnicodeError, ValueError):
        raise exceptions.InvalidPageToken()
    match = RFC3339.match(text)
    if match is None:
        raise exceptions.InvalidPageToken()
    day, clock, fraction, offset = match.groups()
    try:
        value = datetime.strptime(f"{day}T{clock}", "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        raise exceptions.InvalidPageToken()
    if fraction:
        # Digits beyond microseconds are dropped
        value = value.replace(microsecond=int(fraction.ljust(9, "0")[:6]))
    if offset in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = 1 if offset[0] == "+" else -1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if hours > 23 or minutes > 59:
            raise exceptions.InvalidPageToken()
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    try:
        return value.replace(tzinfo=tz).astimezone(timezone.utc)
    except OverflowError:
        raise exceptions.InvalidPageToken()


def clampPageSize(pageSize: int | None) -> int:
    """Unset or non positive sizes use the default, larger ones are capped."""
    if pageSize is None or pageSize <= 0:
        return DEFAULT_PAGE_SIZE
    return min(pageSize, MAX_PAGE_SIZE)


def paginate(
    query: Query, model, pageSize: int | None, pageToken: str | None
) -> tuple[list[Any], str]:
    """
    Fetch one page of `query`.

    The cursor clause is always present and passes through when no token is
    given. One row more than the page size is requested; when it comes back
    it is dropped and the token of the new last row is returned.

    Returns:
        tuple[list[Any], str]: The rows of the page and the next page token,
        empty when this was the last page.
    """
    pageSize = clampPageSize(pageSize)
    cursor = decodePageToken(pageToken) if pageToken else None
    bound = cursor if cursor is not None else datetime(1970, 1, 1, tzinfo=timezone.utc)
    query = (
        query.filter(
            passThrough(
                cursor is not None,
                model.created_at < literal(bound, DateTime(timezone=True)),
            )
        )
        .order_by(model.created_at.desc(), model.internal_id.desc())
        .limit(pageSize + 1)
    )
    rows = query.all()
    nextToken = ""
    if len(rows) > pageSize:
        rows = rows[:pageSize]
        nextToken = encodePageToken(rows[-1].created_at)
    return rows, nextToken
