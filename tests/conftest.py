"""Pytest configuration - loads .env for live tests and provides offline API fakes."""

import json
import urllib.parse
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

from indiepitcher import IndiePitcher
from indiepitcher.core.client import APIClient
from indiepitcher.core.transport import TransportResponse
from indiepitcher.core.types import PORTAL_SESSION_LIFETIME, format_timestamp

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

TEST_API_KEY = "sc_test_key"
TEST_BASE_URL = "https://api.indiepitcher.com/v2"
FIXED_NOW = datetime(2024, 8, 17, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Fake Transport
# =============================================================================


@dataclass
class RecordedRequest:
    """A request as seen by the fake transport."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None
    timeout: float
    max_response_size: int

    @property
    def path(self) -> str:
        return urllib.parse.urlsplit(self.url).path

    @property
    def query(self) -> dict[str, str]:
        return dict(urllib.parse.parse_qsl(urllib.parse.urlsplit(self.url).query))

    def json(self) -> Any:
        return None if self.body is None else json.loads(self.body)


def make_response(status_code: int, body: Any = b"") -> TransportResponse:
    """Build a TransportResponse, JSON-encoding dicts and lists."""
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode("utf-8")
    elif isinstance(body, str):
        body = body.encode("utf-8")
    return TransportResponse(status_code=status_code, body=body)


class FakeTransport:
    """Records requests and answers from a queue or a handler callable."""

    def __init__(self, handler=None):
        self.handler = handler
        self.requests: list[RecordedRequest] = []
        self.responses: list[TransportResponse | Exception] = []

    def queue(self, status_code: int, body: Any = b"") -> None:
        self.responses.append(make_response(status_code, body))

    def queue_error(self, error: Exception) -> None:
        self.responses.append(error)

    @property
    def last_request(self) -> RecordedRequest:
        return self.requests[-1]

    def send(self, method, url, headers, body=None, *, timeout, max_response_size):
        request = RecordedRequest(method, url, dict(headers), body, timeout, max_response_size)
        self.requests.append(request)
        if self.handler is not None:
            return self.handler(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


# =============================================================================
# In-memory IndiePitcher API
# =============================================================================


def _error(status_code: int, reason: str) -> TransportResponse:
    return make_response(status_code, {"error": True, "reason": reason})


def _ok(data: Any = None) -> TransportResponse:
    if data is None:
        return make_response(200, {"success": True})
    return make_response(200, {"success": True, "data": data})


@dataclass
class FakeIndiePitcherAPI:
    """Just enough of the vendor API to exercise every SDK operation offline."""

    api_key: str = TEST_API_KEY
    contacts: dict[str, dict[str, Any]] = field(default_factory=dict)
    contact_lists: list[dict[str, Any]] = field(default_factory=list)
    sent_emails: list[tuple[str, Any]] = field(default_factory=list)

    def add_contact(self, email: str, **fields: Any) -> dict[str, Any]:
        contact = {
            "email": email,
            "subscribedToLists": sorted(fields.pop("subscribedToLists", [])),
            "customProperties": fields.pop("customProperties", {}),
        }
        contact.update({k: v for k, v in fields.items() if v is not None})
        self.contacts[email] = contact
        return contact

    def __call__(self, request: RecordedRequest) -> TransportResponse:
        if request.headers.get("Authorization") != f"Bearer {self.api_key}":
            return _error(401, "Unauthorized")

        path = request.path.removeprefix("/v2")
        route = getattr(self, f"_{request.method.lower()}_{path.strip('/').replace('/', '_')}", None)
        if route is None:
            return _error(404, "Not Found")
        return route(request)

    # Contacts

    def _create(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        email = payload["email"]
        if email in self.contacts and not payload.get("updateIfExists"):
            return None
        return self.add_contact(
            email,
            subscribedToLists=payload.get("subscribedToLists") or [],
            customProperties=payload.get("customProperties") or {},
            userId=payload.get("userId"),
            avatarUrl=payload.get("avatarUrl"),
            name=payload.get("name"),
            languageCode=payload.get("languageCode"),
        )

    def _post_contacts_create(self, request: RecordedRequest) -> TransportResponse:
        contact = self._create(request.json())
        if contact is None:
            return _error(409, "Contact already exists")
        return _ok(contact)

    def _post_contacts_create_many(self, request: RecordedRequest) -> TransportResponse:
        payload = request.json()
        if not isinstance(payload, list):
            return _error(400, "Expected an array of contacts")
        if len(payload) > 100:
            return _error(400, "Too many contacts")
        for item in payload:
            self._create(item)
        return _ok()

    def _patch_contacts_update(self, request: RecordedRequest) -> TransportResponse:
        payload = request.json()
        contact = self.contacts.get(payload["email"])
        if contact is None:
            return _error(404, "Contact not found")
        for key in ("userId", "avatarUrl", "name", "languageCode"):
            if key in payload:
                contact[key] = payload[key]
        lists = set(contact["subscribedToLists"])
        lists |= set(payload.get("addedListSubscripitons", []))
        lists -= set(payload.get("removedListSubscripitons", []))
        contact["subscribedToLists"] = sorted(lists)
        for key, value in (payload.get("customProperties") or {}).items():
            if value is None:
                contact["customProperties"].pop(key, None)
            else:
                contact["customProperties"][key] = value
        return _ok(contact)

    def _post_contacts_delete(self, request: RecordedRequest) -> TransportResponse:
        if self.contacts.pop(request.json()["email"], None) is None:
            return _error(404, "Contact not found")
        return _ok()

    def _page(self, request: RecordedRequest, items: list[Any]) -> TransportResponse:
        page = int(request.query.get("page", 1))
        per = int(request.query.get("per", 10))
        start = (page - 1) * per
        return make_response(
            200,
            {
                "success": True,
                "data": items[start : start + per],
                "metadata": {"page": page, "per": per, "total": len(items)},
            },
        )

    def _get_contacts(self, request: RecordedRequest) -> TransportResponse:
        return self._page(request, list(self.contacts.values()))

    # Emails

    def _record_email(self, request: RecordedRequest) -> TransportResponse:
        self.sent_emails.append((request.path.removeprefix("/v2"), request.json()))
        return _ok()

    _post_email_transactional = _record_email
    _post_email_contact = _record_email
    _post_email_contact_list = _record_email

    # Contact lists

    def _get_contact_lists(self, request: RecordedRequest) -> TransportResponse:
        return self._page(request, self.contact_lists)

    def _post_contact_lists_portal_session(self, request: RecordedRequest) -> TransportResponse:
        payload = request.json()
        if payload["contactEmail"] not in self.contacts:
            return _error(404, "Contact not found")
        return _ok(
            {
                "id": "3b8a6c5e-1f0d-4e0a-9d1e-2c7f5b9a8e41",
                "url": "https://indiepitcher.com/portal/3b8a6c5e",
                "expiresAt": format_timestamp(FIXED_NOW + PORTAL_SESSION_LIFETIME),
                "returnURL": payload["returnURL"],
            }
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_transport() -> FakeTransport:
    """A transport that answers from a queue of canned responses."""
    return FakeTransport()


@pytest.fixture
def api_client(fake_transport) -> APIClient:
    """Core client wired to the scripted fake transport."""
    return APIClient(api_key=TEST_API_KEY, base_url=TEST_BASE_URL, transport=fake_transport)


@pytest.fixture
def fake_api() -> FakeIndiePitcherAPI:
    """In-memory API with two contact lists and no contacts."""
    return FakeIndiePitcherAPI(
        contact_lists=[
            {"name": "important", "title": "Important", "numSubscribers": 0},
            {"name": "newsletter", "title": "Monthly newsletter", "numSubscribers": 0},
        ]
    )


@pytest.fixture
def api_transport(fake_api) -> FakeTransport:
    """Transport routing every request into the in-memory API."""
    return FakeTransport(handler=fake_api)


@pytest.fixture
def client(api_transport) -> IndiePitcher:
    """High-level client talking to the in-memory API."""
    return IndiePitcher(api_key=TEST_API_KEY, base_url=TEST_BASE_URL, transport=api_transport)
