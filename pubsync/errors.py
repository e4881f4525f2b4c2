"""Exceptions raised by the sync core.

Data problems found inside a record (missing columns, bad counts, oversize
values) are logged and recovered from rather than raised. The exceptions here
cover the cases a caller has to act on.
"""


class SyncError(Exception):
    """Base class for pubsync errors."""


class TextUnavailableError(SyncError):
    """A text column exists but its value could not be read as text."""

    def __init__(self, column: str | None, reason: str):
        self.column = column
        self.reason = reason
        where = f" for column '{column}'" if column else ""
        super().__init__(f"Could not read text{where}: {reason}")


class UnknownFieldError(SyncError, ValueError):
    """A requested field is not part of the index schema."""

    def __init__(self, names: list[str]):
        self.names = sorted(names)
        super().__init__(f"Unknown index field(s): {', '.join(self.names)}")


class ConfigError(SyncError):
    """The configuration file is unreadable or invalid."""
