from __future__ import annotations

from collections.abc import Sequence


class ResolverError(Exception):
    """Base metadata resolution error."""


class GatewayFetchError(ResolverError):
    """Raised when a single candidate URL did not yield JSON."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class NonJSONResponseError(GatewayFetchError):
    """Raised when a candidate answered with a readable body that is not JSON."""

    def __init__(self, url: str, text: str) -> None:
        super().__init__(url, "non-JSON response")
        self.text = text


class ResolutionFailedError(ResolverError):
    """Raised when every candidate for a reference failed."""

    def __init__(self, reference: str, failures: Sequence[GatewayFetchError]) -> None:
        super().__init__(f"all gateways failed for reference={reference} attempts={len(failures)}")
        self.reference = reference
        self.failures = list(failures)

    @property
    def text_fallback(self) -> str | None:
        for failure in self.failures:
            if isinstance(failure, NonJSONResponseError) and failure.text.strip():
                return failure.text
        return None
