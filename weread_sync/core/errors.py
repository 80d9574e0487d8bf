class WereadSyncError(Exception):
    """Base class for errors raised while syncing a book."""


class MalformedPayload(WereadSyncError):
    """A required field is missing from an API record."""


class PersistenceFailure(WereadSyncError):
    """A storage call (read, write, folder creation) failed."""


class ConfigurationError(WereadSyncError):
    """Settings cannot be used as given (bad template, unknown option)."""
