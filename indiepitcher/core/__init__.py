"""
Core layer - Raw types and HTTP client.

This layer provides:
- Typed dataclasses matching the API's JSON shapes
- The untagged custom property value codec
- Low-level HTTP client with auth and error handling
"""

from indiepitcher.core.client import APIClient, PreparedRequest
from indiepitcher.core.errors import (
    DecodeError,
    IndiePitcherError,
    RequestError,
    RequestTimeoutError,
    ResponseTooLargeError,
    TransportError,
    ValidationError,
)
from indiepitcher.core.transport import HTTPTransport, TransportResponse, UrllibTransport
from indiepitcher.core.types import (
    Contact,
    ContactList,
    ContactListPortalSession,
    CreateContact,
    CustomPropertyValue,
    DataResponse,
    EmailBodyFormat,
    EmptyResponse,
    ErrorResponse,
    PagedDataResponse,
    PageMetadata,
    PropertyKind,
    SendEmail,
    SendEmailToContact,
    SendEmailToContactList,
    UpdateContact,
)

__all__ = [
    "APIClient",
    "Contact",
    "ContactList",
    "ContactListPortalSession",
    "CreateContact",
    "CustomPropertyValue",
    "DataResponse",
    "DecodeError",
    "EmailBodyFormat",
    "EmptyResponse",
    "ErrorResponse",
    "HTTPTransport",
    "IndiePitcherError",
    "PageMetadata",
    "PagedDataResponse",
    "PreparedRequest",
    "PropertyKind",
    "RequestError",
    "RequestTimeoutError",
    "ResponseTooLargeError",
    "SendEmail",
    "SendEmailToContact",
    "SendEmailToContactList",
    "TransportError",
    "TransportResponse",
    "UpdateContact",
    "UrllibTransport",
    "ValidationError",
]
