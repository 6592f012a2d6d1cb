"""
Feature discovery error taxonomy.

- TransportError: HTTP/network failure. The caller moves on to the next
  layer or catalog strategy; the same query is never retried.
- ParseError: malformed upstream payload. Feature parsing degrades this to
  "no feature"; the catalog client degrades it to "next strategy".
- ServiceException: the upstream reported an error explicitly (a WMS
  ServiceExceptionReport, usually with HTTP 200).

"Nothing found" is not an exception; see DiscoveryStatus.NOT_FOUND.
"""

from typing import Optional


class DiscoveryError(Exception):
    """Base class for feature discovery failures."""


class TransportError(DiscoveryError):
    """Request failed at the HTTP or network level."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(DiscoveryError):
    """Upstream payload could not be parsed."""


class ServiceException(DiscoveryError):
    """Upstream service returned an exception report."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(f"WMS Error: {message}")
        self.upstream_message = message
        self.code = code
