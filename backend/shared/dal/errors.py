"""Failure taxonomy for record store operations."""


class RecordStoreError(Exception):
    """Base class for record store failures."""


class StoreUnavailableError(RecordStoreError):
    """The store could not be reached (network down, timeout, locked database).

    Callers abort the in-flight operation before mutating anything.
    """


class RecordRejectedError(RecordStoreError):
    """A single record operation was refused (missing record, key or uniqueness constraint).

    Callers skip the record, apply a fallback where one exists, and continue.
    """
