"""
Exception types for pm2stream.

None of these cross the public operations of the streamer; they are raised by
collaborators and absorbed (and logged) at the streamer's boundary.
"""


class StreamerError(Exception):
    """Base exception for log streaming errors."""
    pass


class AttachmentError(StreamerError):
    """Raised when the process log stream cannot be attached."""
    pass


class LogStoreError(StreamerError):
    """Raised when a log store backend fails to read or write."""
    pass


class NotificationError(StreamerError):
    """Raised when a webhook notification could not be delivered."""
    pass


class ConfigError(StreamerError):
    """Raised when configuration cannot be loaded."""
    pass


class SubscriptionClosed(StreamerError):
    """Raised when reading from a closed, drained subscription."""
    pass
