"""
Error taxonomy for the now-playing client.

Only launch problems are raised.  Malformed stream records and failed
control commands are logged and swallowed, since the media source is an
optional system service.
"""


class NowPlayingError(Exception):
    """Base class for now-playing client errors."""
    pass


class AdapterNotFoundError(NowPlayingError):
    """The adapter script, framework bundle or interpreter is missing."""
    pass


class AdapterLaunchError(NowPlayingError):
    """The streaming adapter could not be launched."""
    pass
