"""Exceptions shared by the store, service and model layers."""


class HubError(Exception):
    """Base class for all catalog errors."""


class InvalidRecordError(HubError):
    """Field values that can never be stored (blank title, store-managed fields supplied by a caller, ...)."""


class RepositoryError(HubError):
    """A store could not read or write its backing storage."""


class BackendUnavailableError(HubError):
    """The remote store could not be acquired (missing configuration, unreachable database, failed probe)."""
