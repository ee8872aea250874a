"""Shared helpers for database connectivity and error reporting."""

from __future__ import annotations

from typing import Union


def decode_psycopg_unicode_error(err: UnicodeDecodeError) -> str:
    """Return a readable message from psycopg2 UnicodeDecodeError details."""
    raw: Union[bytes, bytearray, None] = getattr(err, "object", None)
    if isinstance(raw, (bytes, bytearray)):
        try:
            return raw.decode("latin-1")
        except UnicodeDecodeError:
            return repr(raw)
    return str(err)


def describe_db_error(err: Exception) -> str:
    """Return the driver-level message wrapped by a SQLAlchemy error.

    ``DBAPIError`` keeps the original driver exception in ``orig``; operators
    want that text verbatim rather than SQLAlchemy's wrapper with the SQL
    statement and parameters appended.
    """
    orig = getattr(err, "orig", None)
    if orig is not None:
        err = orig
    if isinstance(err, UnicodeDecodeError):
        return decode_psycopg_unicode_error(err)
    message = str(err).strip()
    return message or err.__class__.__name__
