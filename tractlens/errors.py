"""Exception types shared by the fetch, session and API layers."""

from __future__ import annotations


class TractLensError(Exception):
    """Base class for all TractLens errors."""


class RemoteFetchError(TractLensError):
    """A request to the Census API or the boundary file server failed."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class EmptySelectionError(TractLensError):
    """A detail fetch was requested while no tract is selected."""


class StaleResultDiscarded(TractLensError):
    """A fetch resolved after a newer request for the same stage was issued."""

    def __init__(self, stage: str, token: int, latest: int):
        super().__init__(f"{stage} result #{token} superseded by #{latest}")
        self.stage = stage
        self.token = token
        self.latest = latest


class UnknownRegionError(TractLensError, ValueError):
    """The requested state could not be resolved."""
