class InventorySyncError(Exception):
    """Base class for inventory reconciliation errors."""


class AuthError(InventorySyncError):
    """Token exchange failed or the refresh credential is missing."""


class RemoteReadFailure(InventorySyncError):
    """A marketplace inventory read did not return a usable quantity."""


class RemoteWriteFailure(InventorySyncError):
    """A marketplace inventory write was not accepted."""


class PersistenceFailure(InventorySyncError):
    """Reading or writing local inventory records failed."""


class SyncAlreadyRunning(InventorySyncError):
    """Another reconciliation run holds the run lock."""
