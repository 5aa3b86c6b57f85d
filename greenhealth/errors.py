"""Error taxonomy for reminder checks and notification dispatch."""


class GreenHealthError(Exception):
    """Base class for application errors."""


class PermissionDenied(GreenHealthError):
    """The owner declined or revoked notification permission."""


class StoreUnavailable(GreenHealthError):
    """The reminder store could not be read or written."""


class PlatformUnsupported(GreenHealthError):
    """A notification or periodic-sync capability is missing."""
