from __future__ import annotations


class LedgerError(Exception):
    """Base class for user-facing ledger errors."""


class DuplicateName(LedgerError):
    def __init__(self, name: str):
        super().__init__(f"A broker named '{name}' already exists.")
        self.name = name


class InvalidFormat(LedgerError):
    pass


class ValidationError(LedgerError):
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field
