"""
Core types mirroring the IndiePitcher API JSON shapes.

Python attributes are snake_case; to_dict()/from_dict() translate to and from
the camelCase keys used on the wire.
"""

import math
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from indiepitcher.core.errors import DecodeError, ValidationError

T = TypeVar("T")

# =============================================================================
# Timestamps
# =============================================================================


_TIMESTAMP_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,6}))?(Z|[+-]\d{2}:\d{2})",
    re.ASCII,
)


def _as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """
    Render a datetime as an ISO-8601 UTC timestamp.

    Naive datetimes are taken to be UTC. Fractional seconds are only written
    when present, e.g. 2024-08-17T10:30:00Z or 2024-08-17T10:30:00.250000Z.
    """
    value = _as_utc(value)
    text = f"{value.year:04d}-{value.month:02d}-{value.day:02d}T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    if value.microsecond:
        text += f".{value.microsecond:06d}"
    return text + "Z"


def parse_timestamp(text: str) -> datetime:
    """
    Parse a strict ISO-8601 date-time into an aware UTC datetime.

    Raises:
        ValueError: If text is not a complete date-time with a zone designator

    """
    match = _TIMESTAMP_RE.fullmatch(text)
    if not match:
        raise ValueError(f"Not an ISO-8601 timestamp: {text!r}")

    year, month, day, hour, minute, second, fraction, zone = match.groups()
    microsecond = int(fraction.ljust(6, "0")) if fraction else 0
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        offset = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
        tz = timezone(sign * offset)

    try:
        parsed = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), microsecond, tzinfo=tz
        )
        return parsed.astimezone(timezone.utc)
    except OverflowError as e:
        # the offset pushes the instant outside the range datetime can hold
        raise ValueError(f"Timestamp out of range: {text!r}") from e


def _parse_optional_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return parse_timestamp(value)


def to_json_value(value: Any) -> Any:
    """json.dumps default hook: datetimes as ISO-8601, enums by value."""
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# =============================================================================
# Custom Property Values
# =============================================================================


class PropertyKind(str, Enum):
    """The kinds of value a custom contact property can hold."""

    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    DATE = "date"


_KIND_TYPES: dict[PropertyKind, tuple[type, ...]] = {
    PropertyKind.STRING: (str,),
    PropertyKind.NUMBER: (int, float),
    PropertyKind.BOOL: (bool,),
    PropertyKind.DATE: (datetime,),
}


@dataclass(frozen=True)
class CustomPropertyValue:
    """
    A custom contact property value: a string, number, bool or date.

    The API carries no type tag for these values, so decoding has to guess the
    kind from the raw JSON value. from_json() tries the kinds in a fixed order
    (date, bool, number, string); a string that looks like an ISO-8601
    timestamp therefore comes back as a date.

    Example:
        CustomPropertyValue.number(42)
        CustomPropertyValue.of(True)
        CustomPropertyValue.from_json("2024-08-17T10:30:00Z").kind  # PropertyKind.DATE

    """

    kind: PropertyKind
    value: str | float | bool | datetime

    def __post_init__(self) -> None:
        kind = PropertyKind(self.kind)
        value = self.value
        # bool is an int subclass, so it must not pass as a number
        if not isinstance(value, _KIND_TYPES[kind]) or (kind is PropertyKind.NUMBER and isinstance(value, bool)):
            raise ValidationError(
                f"{type(value).__name__} is not a valid {kind.value} property value",
                details={"kind": kind.value, "value": repr(value)},
            )
        if kind is PropertyKind.NUMBER:
            try:
                value = float(value)
            except OverflowError:
                value = math.inf
            if not math.isfinite(value):
                raise ValidationError(
                    "number property values must be finite",
                    details={"kind": kind.value, "value": repr(self.value)},
                )
        elif kind is PropertyKind.DATE:
            value = _as_utc(value)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "value", value)

    @classmethod
    def string(cls, value: str) -> "CustomPropertyValue":
        return cls(PropertyKind.STRING, value)

    @classmethod
    def number(cls, value: float) -> "CustomPropertyValue":
        return cls(PropertyKind.NUMBER, value)

    @classmethod
    def boolean(cls, value: bool) -> "CustomPropertyValue":
        return cls(PropertyKind.BOOL, value)

    @classmethod
    def date(cls, value: datetime) -> "CustomPropertyValue":
        return cls(PropertyKind.DATE, value)

    @classmethod
    def of(cls, value: Any) -> "CustomPropertyValue":
        """Wrap a native Python value, inferring its kind from its type."""
        if isinstance(value, CustomPropertyValue):
            return value
        if isinstance(value, bool):
            return cls.boolean(value)
        if isinstance(value, (int, float)):
            return cls.number(value)
        if isinstance(value, datetime):
            return cls.date(value)
        if isinstance(value, str):
            return cls.string(value)
        raise ValidationError(f"Unsupported custom property type: {type(value).__name__}")

    def to_json(self) -> str | float | bool:
        """Encode to the untagged wire value."""
        if self.kind is PropertyKind.DATE:
            return format_timestamp(self.value)  # type: ignore[arg-type]
        return self.value  # type: ignore[return-value]

    @classmethod
    def from_json(cls, raw: Any) -> "CustomPropertyValue":
        """
        Decode an untagged wire value.

        Probe order is date, bool, number, string. Changing it changes which
        strings are read back as dates.

        Raises:
            DecodeError: If raw is not a JSON scalar (object, array or null)

        """
        if isinstance(raw, str):
            try:
                return cls.date(parse_timestamp(raw))
            except ValueError:
                pass
        if isinstance(raw, bool):
            return cls.boolean(raw)
        if isinstance(raw, (int, float)):
            try:
                return cls.number(raw)
            except ValidationError as e:
                raise DecodeError(
                    "number does not fit in a finite double",
                    details={"value": repr(raw)},
                ) from e
        if isinstance(raw, str):
            return cls.string(raw)
        raise DecodeError(
            "value matches none of string/number/bool/date",
            details={"value": repr(raw)},
        )


def _encode_properties(properties: dict[str, Any]) -> dict[str, Any]:
    # None is kept as null: on update it removes the property
    return {
        key: None if value is None else CustomPropertyValue.of(value).to_json() for key, value in properties.items()
    }


def _decode_properties(raw: Any) -> dict[str, CustomPropertyValue]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise DecodeError(f"Expected a JSON object for custom properties, got {type(raw).__name__}")
    return {key: CustomPropertyValue.from_json(value) for key, value in raw.items()}


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None (optional fields are omitted on the wire)."""
    return {k: v for k, v in data.items() if v is not None}


def _sorted_or_none(values) -> list[str] | None:
    if values is None:
        return None
    return sorted(values)


# =============================================================================
# Contact Types
# =============================================================================


class EmailBodyFormat(str, Enum):
    """The format of an email body."""

    MARKDOWN = "markdown"
    HTML = "html"


@dataclass
class Contact:
    """A contact in the contact list."""

    email: str
    user_id: str | None = None
    avatar_url: str | None = None
    name: str | None = None
    # Set when a send failed with a hard bounce; no further emails go to this contact
    hard_bounced_at: datetime | None = None
    subscribed_to_lists: list[str] = field(default_factory=list)
    custom_properties: dict[str, CustomPropertyValue] = field(default_factory=dict)
    language_code: str | None = None

    @property
    def is_hard_bounced(self) -> bool:
        """Check if sending to this contact is disabled due to a hard bounce."""
        return self.hard_bounced_at is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Contact":
        """Create from API response dict."""
        return cls(
            email=data["email"],
            user_id=data.get("userId"),
            avatar_url=data.get("avatarUrl"),
            name=data.get("name"),
            hard_bounced_at=_parse_optional_timestamp(data.get("hardBouncedAt")),
            subscribed_to_lists=list(data.get("subscribedToLists") or []),
            custom_properties=_decode_properties(data.get("customProperties")),
            language_code=data.get("languageCode"),
        )


@dataclass
class CreateContact:
    """
    Payload to create a new contact.

    subscribed_to_lists takes list `name`s. Custom properties must first be
    defined in the IndiePitcher dashboard. With update_if_exists=True an
    existing contact with the same email is updated instead of rejected.
    """

    email: str
    user_id: str | None = None
    avatar_url: str | None = None
    name: str | None = None
    language_code: str | None = None
    update_if_exists: bool | None = None
    subscribed_to_lists: set[str] | list[str] | None = None
    custom_properties: dict[str, CustomPropertyValue] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for API request."""
        return _compact(
            {
                "email": self.email,
                "userId": self.user_id,
                "avatarUrl": self.avatar_url,
                "name": self.name,
                "languageCode": self.language_code,
                "updateIfExists": self.update_if_exists,
                "subscribedToLists": _sorted_or_none(self.subscribed_to_lists),
                "customProperties": (
                    _encode_properties(self.custom_properties) if self.custom_properties is not None else None
                ),
            }
        )


@dataclass
class UpdateContact:
    """
    Payload to update an existing contact, identified by email.

    A custom property mapped to None is removed from the contact.
    """

    email: str
    user_id: str | None = None
    avatar_url: str | None = None
    name: str | None = None
    language_code: str | None = None
    added_list_subscriptions: set[str] | list[str] | None = None
    removed_list_subscriptions: set[str] | list[str] | None = None
    custom_properties: dict[str, CustomPropertyValue | None] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for API request."""
        # The API spells the subscription keys this way
        return _compact(
            {
                "email": self.email,
                "userId": self.user_id,
                "avatarUrl": self.avatar_url,
                "name": self.name,
                "languageCode": self.language_code,
                "addedListSubscripitons": _sorted_or_none(self.added_list_subscriptions),
                "removedListSubscripitons": _sorted_or_none(self.removed_list_subscriptions),
                "customProperties": (
                    _encode_properties(self.custom_properties) if self.custom_properties is not None else None
                ),
            }
        )


# =============================================================================
# Email Types
# =============================================================================


@dataclass
class SendEmail:
    """
    A one-off transactional email.

    `to` can be a bare address ("john@example.com") or include a name
    ("John Doe <john@example.com>"). The recipient does not need to be a contact.
    """

    to: str
    subject: str
    body: str
    body_format: EmailBodyFormat = EmailBodyFormat.MARKDOWN

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for API request."""
        return {
            "to": self.to,
            "subject": self.subject,
            "body": self.body,
            "bodyFormat": EmailBodyFormat(self.body_format).value,
        }


@dataclass
class SendEmailToContact:
    """
    A personalized email to one or more existing contacts.

    Set either contact_email or contact_emails. The contacts must be subscribed
    to `list`, which is what they can unsubscribe from; "important" is a list
    every contact is on and cannot leave. Subject and body support
    personalization tags such as {{firstName|default:"there"}}.
    """

    subject: str
    body: str
    body_format: EmailBodyFormat = EmailBodyFormat.MARKDOWN
    contact_email: str | None = None
    contact_emails: list[str] | None = None
    list: str = "important"
    delay_seconds: float | None = None
    delay_until_date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for API request."""
        return _compact(
            {
                "contactEmail": self.contact_email,
                "contactEmails": self.contact_emails,
                "subject": self.subject,
                "body": self.body,
                "bodyFormat": EmailBodyFormat(self.body_format).value,
                "list": self.list,
                "delaySeconds": self.delay_seconds,
                "delayUntilDate": format_timestamp(self.delay_until_date) if self.delay_until_date else None,
            }
        )


@dataclass
class SendEmailToContactList:
    """A personalized email to every contact subscribed to `list`."""

    subject: str
    body: str
    body_format: EmailBodyFormat = EmailBodyFormat.MARKDOWN
    list: str = "important"
    delay_seconds: float | None = None
    delay_until_date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for API request."""
        return _compact(
            {
                "subject": self.subject,
                "body": self.body,
                "bodyFormat": EmailBodyFormat(self.body_format).value,
                "list": self.list,
                "delaySeconds": self.delay_seconds,
                "delayUntilDate": format_timestamp(self.delay_until_date) if self.delay_until_date else None,
            }
        )


# =============================================================================
# Contact List Types
# =============================================================================


PORTAL_SESSION_LIFETIME = timedelta(minutes=30)


@dataclass
class ContactList:
    """A list contacts can subscribe to, such as `Monthly newsletter`."""

    # Unique key used by the API; `title` is the human readable name
    name: str
    title: str
    num_subscribers: int = 0
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContactList":
        """Create from API response dict."""
        return cls(
            name=data["name"],
            title=data.get("title") or data["name"],
            num_subscribers=data.get("numSubscribers", 0),
            id=data.get("id"),
        )


@dataclass
class ContactListPortalSession:
    """A hosted page where a contact manages their list subscriptions."""

    url: str
    expires_at: datetime
    return_url: str
    id: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the session URL is no longer usable."""
        now = _as_utc(now) if now else datetime.now(timezone.utc)
        return now >= self.expires_at

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContactListPortalSession":
        """Create from API response dict."""
        return cls(
            url=data["url"],
            expires_at=parse_timestamp(data["expiresAt"]),
            return_url=data["returnURL"],
            id=data.get("id"),
        )


# =============================================================================
# Response Envelopes
# =============================================================================


def _require_dict(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodeError(f"Expected a JSON object, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class DataResponse(Generic[T]):
    """A response carrying a single resource."""

    data: T
    # Always true; kept because it is part of the wire shape
    success: bool = True

    @classmethod
    def from_dict(cls, payload: Any, parser: Callable[[Any], T]) -> "DataResponse[T]":
        """Create from API response dict, parsing `data` with parser."""
        payload = _require_dict(payload)
        return cls(data=parser(payload["data"]), success=payload.get("success", True))


@dataclass(frozen=True)
class EmptyResponse:
    """A response acknowledging a call that returns no data."""

    success: bool = True

    @classmethod
    def from_dict(cls, payload: Any) -> "EmptyResponse":
        """Create from API response dict."""
        payload = _require_dict(payload)
        return cls(success=payload.get("success", True))


@dataclass(frozen=True)
class PageMetadata:
    """Paging metadata."""

    # 1-based page index
    page: int
    per: int
    # Size of the whole result set, not the number of pages
    total: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PageMetadata":
        """Create from API response dict."""
        return cls(page=int(data["page"]), per=int(data["per"]), total=int(data["total"]))


@dataclass(frozen=True)
class PagedDataResponse(Generic[T]):
    """A single page of results."""

    data: list[T]
    metadata: PageMetadata
    success: bool = True

    @property
    def has_more(self) -> bool:
        """Check if there are more pages after this one."""
        return self.metadata.page * self.metadata.per < self.metadata.total

    @classmethod
    def from_dict(cls, payload: Any, parser: Callable[[Any], T]) -> "PagedDataResponse[T]":
        """Create from API response dict, parsing each item with parser."""
        payload = _require_dict(payload)
        items = payload["data"]
        if not isinstance(items, list):
            raise DecodeError(f"Expected a JSON array for 'data', got {type(items).__name__}")
        return cls(
            data=[parser(item) for item in items],
            metadata=PageMetadata.from_dict(payload["metadata"]),
            success=payload.get("success", True),
        )


@dataclass(frozen=True)
class ErrorResponse:
    """The body returned with non-2xx responses."""

    reason: str
    error: bool = True

    @classmethod
    def from_dict(cls, payload: Any) -> "ErrorResponse":
        """Create from API response dict."""
        payload = _require_dict(payload)
        reason = payload["reason"]
        if not isinstance(reason, str):
            raise DecodeError("Error reason must be a string")
        return cls(reason=reason, error=payload.get("error", True))
