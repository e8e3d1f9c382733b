"""Exception types shared across the prober, segmenter and query layers."""


class PlayLogError(Exception):
    """Base class for PlayLog errors."""


class UpstreamError(PlayLogError):
    """The upstream playtime counter could not be read."""


class StoreError(PlayLogError):
    """A read or write against the persistent store failed."""


class SegmentationError(PlayLogError):
    """A processing window could not be segmented; retry the whole window."""

    def __init__(self, window_id: str, message: str):
        super().__init__(f"Segmentation failed for window {window_id}: {message}")
        self.window_id = window_id


class TimezoneConfigError(PlayLogError, ValueError):
    """The configured target timezone cannot be resolved."""

    def __init__(self, tz_name: str, reason: str = "unknown timezone"):
        super().__init__(f"Cannot resolve timezone '{tz_name}': {reason}")
        self.tz_name = tz_name
