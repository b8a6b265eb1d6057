"""Typed failures raised by the validation layer, engine and store."""

from __future__ import annotations

from typing import Optional


class BoardError(Exception):
    """Base class for every expected board failure."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BoardError):
    """A command is malformed or out of contract.

    ``code`` is ``InvalidField`` when the payload carries a key outside the
    command's closed field set, ``InvalidValue`` otherwise.
    """

    status_code = 400

    def __init__(self, message: str, *, code: str = "InvalidValue", field: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.field = field


class NotFoundError(BoardError):
    """A referenced board, column or task id is absent."""

    status_code = 404

    def __init__(self, kind: str, identifier: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"{kind.capitalize()} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class StorageError(BoardError):
    """The underlying document store failed a get or put."""

    status_code = 500
