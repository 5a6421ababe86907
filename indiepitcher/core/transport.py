"""
HTTP transport used by the core client.

The client only needs one primitive: send a request and get back the status
code and the raw body. Anything implementing HTTPTransport can be passed to
the client (e.g. a pooled session or a test double); UrllibTransport is the
default and relies only on the standard library.
"""

import http.client
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Protocol

from indiepitcher.core.errors import RequestTimeoutError, ResponseTooLargeError, TransportError


@dataclass(frozen=True)
class TransportResponse:
    """Raw HTTP response as seen by the transport."""

    status_code: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        """Check if the status code is in the 2xx range."""
        return 200 <= self.status_code < 300


class HTTPTransport(Protocol):
    """Anything that can perform a single HTTP round trip."""

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
        *,
        timeout: float,
        max_response_size: int,
    ) -> TransportResponse:
        """
        Perform one HTTP request.

        Non-2xx responses must be returned, not raised. Connection problems
        raise TransportError, timeouts raise RequestTimeoutError and bodies
        larger than max_response_size raise ResponseTooLargeError.
        """
        ...


def _read_limited(stream, max_response_size: int) -> bytes:
    """Read at most max_response_size bytes, failing if there is more."""
    data = stream.read(max_response_size + 1)
    if len(data) > max_response_size:
        raise ResponseTooLargeError(
            f"Response body exceeds {max_response_size} bytes",
            details={"max_response_size": max_response_size},
        )
    return data


def _read_body(stream, max_response_size: int, timeout: float) -> bytes:
    """Read a response body, mapping socket failures to transport errors."""
    try:
        return _read_limited(stream, max_response_size)
    except (TimeoutError, socket.timeout) as e:
        raise RequestTimeoutError(f"Timed out reading response after {timeout} seconds") from e
    except (http.client.HTTPException, OSError) as e:
        raise TransportError(f"Connection error while reading response: {e!r}") from e


class UrllibTransport:
    """
    Transport built on urllib.request.

    Each call opens its own connection, so one instance can be shared freely
    between threads. The timeout applies to each socket operation (connect
    and every read), not to the request as a whole.
    """

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
        *,
        timeout: float,
        max_response_size: int,
    ) -> TransportResponse:
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            response = urllib.request.urlopen(req, timeout=timeout)

        except urllib.error.HTTPError as e:
            # urllib raises for non-2xx; hand the response back to the client instead
            try:
                return TransportResponse(status_code=e.code, body=_read_body(e, max_response_size, timeout))
            finally:
                e.close()

        except urllib.error.URLError as e:
            if isinstance(e.reason, (TimeoutError, socket.timeout)):
                raise RequestTimeoutError(f"Request timed out after {timeout} seconds") from e
            raise TransportError(f"Connection error: {e.reason}") from e

        except TimeoutError as e:
            raise RequestTimeoutError(f"Request timed out after {timeout} seconds") from e

        except (http.client.HTTPException, OSError) as e:
            raise TransportError(f"Connection error: {e!r}") from e

        with response:
            return TransportResponse(
                status_code=response.status,
                body=_read_body(response, max_response_size, timeout),
            )
