from __future__ import annotations

from typing import Any


class FeedScanError(Exception):
    """Base class for failures of the feed-scan pipeline.

    Carries the HTTP status and the extra diagnostic fields that go into the
    ``{"error": ...}`` response body.
    """

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None, **payload: Any):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = {k: v for k, v in payload.items() if v is not None}

    def to_response(self) -> dict[str, Any]:
        return {"error": self.message, **self.payload}


class ScanValidationError(FeedScanError):
    """The request is unusable (no image, bad encoding, too large)."""

    status_code = 400


class UpstreamError(FeedScanError):
    """The inference provider failed or answered without usable content."""

    status_code = 502

    def __init__(self, message: str, *, raw: Any = None, status_code: int | None = None, details: str | None = None):
        super().__init__(message, status_code=status_code, raw=raw, details=details)
        self.raw = raw


class ParseError(FeedScanError):
    """The model reply is not valid JSON once code fences are stripped."""

    def __init__(self, details: str, *, raw: str):
        super().__init__("Analysis failed", details=details, raw=raw)
        self.raw = raw


class SchemaViolationError(FeedScanError):
    """The model reply parsed but does not have the AnalysisResult shape."""

    def __init__(self, issues: list[str]):
        super().__init__("Analysis failed", details="; ".join(issues))
        self.issues = list(issues)


class PersistenceError(FeedScanError):
    """Recording the scan history row failed."""

    def __init__(self, details: str):
        super().__init__("Analysis failed", details=details)
