"""
Core HTTP client for the IndiePitcher API.

Handles authentication, request building, JSON encoding and the mapping of
responses to typed envelopes or errors.
"""

import json
import logging
import os
import urllib.parse
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from indiepitcher.core.errors import DecodeError, IndiePitcherError, RequestError, ValidationError
from indiepitcher.core.transport import HTTPTransport, UrllibTransport
from indiepitcher.core.types import ErrorResponse, to_json_value

# Configuration
DEFAULT_BASE_URL = "https://api.indiepitcher.com/v2"
DEFAULT_TIMEOUT = 30
MAX_RESPONSE_SIZE = 100 * 1024 * 1024
USER_AGENT = "indiepitcher-python/0.1.0"
UNKNOWN_REASON = "Unknown reason"

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedRequest:
    """A fully built request, ready to hand to the transport."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    def json(self) -> Any:
        """Decode the body back to Python (handy in tests and logging)."""
        if self.body is None:
            return None
        return json.loads(self.body.decode("utf-8"))


def encode_body(data: Any) -> bytes:
    """
    Serialize a request body to UTF-8 JSON, timestamps as ISO-8601.

    Raises:
        ValidationError: If the body holds NaN or an infinity, which JSON cannot express

    """
    try:
        return json.dumps(data, default=to_json_value, allow_nan=False).encode("utf-8")
    except ValueError as e:
        raise ValidationError(f"Request body is not valid JSON: {e}") from e


class APIClient:
    """
    Low-level HTTP client for the IndiePitcher API.

    Handles:
    - Bearer authentication via API key
    - HTTP methods (GET, POST, PATCH)
    - Error handling and response parsing

    Holds no per-call state, so one instance can serve concurrent callers as
    long as the transport can.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: HTTPTransport | None = None,
        max_response_size: int = MAX_RESPONSE_SIZE,
    ):
        """
        Initialize the API client.

        Args:
            api_key: Secret project API key (or INDIEPITCHER_API_KEY env var)
            base_url: API base URL (or INDIEPITCHER_BASE_URL env var)
            timeout: Request timeout in seconds
            transport: HTTP transport to use; defaults to UrllibTransport
            max_response_size: Largest accepted response body in bytes

        """
        self._api_key = api_key or os.environ.get("INDIEPITCHER_API_KEY")
        env_base_url = os.environ.get("INDIEPITCHER_BASE_URL", DEFAULT_BASE_URL)
        self.base_url = (base_url or env_base_url).rstrip("/")
        self.timeout = timeout
        self.max_response_size = max_response_size
        self.transport = transport or UrllibTransport()

    @property
    def api_key(self) -> str | None:
        """The configured API key (read-only)."""
        return self._api_key

    def _ensure_api_key(self) -> str:
        """Ensure API key is configured."""
        if not self._api_key:
            raise IndiePitcherError("INDIEPITCHER_API_KEY environment variable not set")
        return self._api_key

    def _build_url(self, path: str, params: dict[str, Any] | None = None) -> str:
        """Build full URL from path and optional query parameters."""
        url = f"{self.base_url}{path}"
        if params:
            # Filter out None values and URL-encode
            filtered_params = {k: v for k, v in params.items() if v is not None}
            if filtered_params:
                separator = "&" if "?" in url else "?"
                url = f"{url}{separator}{urllib.parse.urlencode(filtered_params)}"
        return url

    def build_request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> PreparedRequest:
        """
        Build an authenticated request.

        Args:
            method: HTTP method (GET, POST, PATCH)
            path: API path appended to the base URL (e.g., /contacts/create)
            body: JSON-serializable request body, or None for no body
            params: Query string parameters

        Returns:
            PreparedRequest with URL, headers and encoded body

        """
        headers = {
            "Authorization": f"Bearer {self._ensure_api_key()}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        encoded = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            encoded = encode_body(body)

        return PreparedRequest(
            method=method.upper(),
            url=self._build_url(path, params),
            headers=headers,
            body=encoded,
        )

    def execute(self, request: PreparedRequest, parser: Callable[[Any], T]) -> T:
        """
        Send a request and decode the response.

        Args:
            request: Request from build_request()
            parser: Turns the decoded JSON body into the expected envelope

        Returns:
            Whatever parser returns for a 2xx response

        Raises:
            RequestError: On a non-2xx status
            DecodeError: If a 2xx body is not valid JSON or has the wrong shape
            TransportError: If no response was received (incl. timeouts)

        """
        response = self.transport.send(
            request.method,
            request.url,
            request.headers,
            request.body,
            timeout=self.timeout,
            max_response_size=self.max_response_size,
        )
        logger.debug("HTTP %s %s -> %s", request.method, request.url, response.status_code)

        if not response.ok:
            reason = self._error_reason(response.body)
            logger.debug("Request failed with status %s: %s", response.status_code, reason)
            raise RequestError(response.status_code, reason)

        try:
            text = response.body.decode("utf-8")
            payload = json.loads(text) if text.strip() else {"success": True}
            return parser(payload)
        except DecodeError:
            raise
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"Invalid JSON response: {e}") from e
        except (AttributeError, KeyError, OverflowError, TypeError, ValueError) as e:
            raise DecodeError(
                f"Unexpected response shape: {e!r}",
                details={"url": request.url, "status": response.status_code},
            ) from e

    @staticmethod
    def _error_reason(body: bytes) -> str:
        """Extract the vendor's reason from an error body, or fall back."""
        try:
            return ErrorResponse.from_dict(json.loads(body.decode("utf-8"))).reason
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, DecodeError):
            return UNKNOWN_REASON

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def get(self, path: str, params: dict[str, Any] | None = None, *, parser: Callable[[Any], T]) -> T:
        """Make a GET request."""
        return self.execute(self.build_request("GET", path, params=params), parser)

    def post(self, path: str, data: Any = None, *, parser: Callable[[Any], T]) -> T:
        """Make a POST request."""
        return self.execute(self.build_request("POST", path, data), parser)

    def patch(self, path: str, data: Any = None, *, parser: Callable[[Any], T]) -> T:
        """Make a PATCH request."""
        return self.execute(self.build_request("PATCH", path, data), parser)
