"""Error taxonomy for the relay.

Every failure the core can surface derives from ``PodRelayError`` so the
HTTP layer can map it to a status code without catching ``Exception``.
"""

from __future__ import annotations

from typing import Any


class PodRelayError(Exception):
    """Base class for relay errors."""


class ConfigError(PodRelayError):
    """A required credential or setting is missing."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"{setting} is not configured")


class UpstreamUnavailable(PodRelayError):
    """The provider catalog could not be read."""

    def __init__(self, message: str, url: str = "", status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class SubmissionError(PodRelayError):
    """The provider rejected an order upsert.

    ``payload`` is the provider's error body (parsed JSON when possible).
    """

    def __init__(self, external_id: str, payload: Any, status_code: int | None = None):
        self.external_id = external_id
        self.payload = payload
        self.status_code = status_code
        super().__init__(f"Printful order {external_id} failed: {payload}")


class SignatureInvalid(PodRelayError):
    """Webhook body failed HMAC verification."""
