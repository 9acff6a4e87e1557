class AniSyncError(Exception):
    """Base class for every error raised by anisync."""

class NetworkError(AniSyncError):
    """A request could not be sent or came back with a bad status."""

class DecodeError(AniSyncError):
    """A response body did not have the expected shape."""

class ChannelClosedError(AniSyncError):
    """The player control socket is gone. Normal end of a session."""

class NotFoundError(AniSyncError):
    """A show or episode is missing from a list or the catalog."""

class PlayerLaunchError(AniSyncError):
    """The player process could not be started."""

class NoSourcesError(AniSyncError):
    """No playable link could be produced for an episode."""

class TrackerError(AniSyncError):
    """The remote tracker rejected a request."""

class AuthError(TrackerError):
    """The tracker refused the bearer token."""
