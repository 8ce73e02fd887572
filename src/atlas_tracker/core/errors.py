from __future__ import annotations


class AtlasTrackerError(Exception):
    """Base class for errors raised by the tracker core."""


class SourceFetchError(AtlasTrackerError):
    """
    An external source could not deliver usable data.
    Recovered inside the orchestrator; never reaches its callers.
    """

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class CriticalDataError(AtlasTrackerError):
    """
    Core data is internally inconsistent (e.g. the vis-viva fallback cannot be
    evaluated for a validated distance). Not recoverable by substituting defaults.
    """
