"""Exceptions surfaced to the API layer."""


class StoreError(RuntimeError):
    """Document store read or write failed; the turn cannot complete."""


class InvalidUserIdError(ValueError):
    """User key is empty or unusable as a storage key."""


class OracleUnavailableError(RuntimeError):
    """An external model gave no usable result where one is required."""
