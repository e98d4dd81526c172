"""Exception types for p2plauncher."""


class LauncherError(Exception):
    """Base class for p2plauncher errors."""


class InvalidExecutableError(LauncherError, ValueError):
    """The chosen path cannot be launched."""


class SpawnError(LauncherError):
    """The OS refused to start the process."""


class AlreadyRunningError(LauncherError):
    """A launch was requested while another session is active."""


class LauncherStoppedError(LauncherError):
    """A launch was requested after the launcher was shut down."""


class CleanupWarning(LauncherError):
    """A descendant process vanished or resisted termination during cleanup."""


class DiscoveryAttemptError(LauncherError):
    """A single discovery request failed."""


class MalformedPayloadError(DiscoveryAttemptError, ValueError):
    """A JSON payload from a collaborator did not have the expected shape."""
