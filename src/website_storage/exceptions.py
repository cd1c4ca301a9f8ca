"""Errors raised by storage connectors."""

from __future__ import annotations


class StorageError(Exception):
    """Base class for every error raised by a connector."""


class NotFound(StorageError, LookupError):
    """A website, its metadata, an asset or a connector does not exist."""


class InvalidArgument(StorageError, ValueError):
    """A required identifier is missing or a value cannot be used."""


class IOFailure(StorageError, OSError):
    """Reading or writing the backend failed.

    The underlying error is available as ``__cause__``.
    """


def required_param(value: str | None, name: str) -> str:
    """Return ``value`` or raise InvalidArgument when it is empty."""
    if not value:
        raise InvalidArgument(f"Missing required parameter: {name}")
    return value
