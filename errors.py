class DiscoveryError(Exception):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidUrl(DiscoveryError, ValueError):
    """Malformed or empty input URL. The only failure surfaced to callers."""


class SourceUnavailable(DiscoveryError):
    """A harvester could not fetch or parse its source; recovered as a warning."""


class ScanCancelled(DiscoveryError):
    """The caller abandoned the scan request."""
