"""
IndiePitcher - Python SDK for the IndiePitcher email API.

Layers:
- core: Raw types, property codec and HTTP client
- sdk: High-level IndiePitcher client with typed operations
"""

import logging

from indiepitcher.core import (
    Contact,
    ContactList,
    ContactListPortalSession,
    CreateContact,
    CustomPropertyValue,
    DataResponse,
    DecodeError,
    EmailBodyFormat,
    EmptyResponse,
    IndiePitcherError,
    PagedDataResponse,
    RequestError,
    RequestTimeoutError,
    SendEmail,
    SendEmailToContact,
    SendEmailToContactList,
    TransportError,
    UpdateContact,
    ValidationError,
)
from indiepitcher.sdk import IndiePitcher

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "Contact",
    "ContactList",
    "ContactListPortalSession",
    "CreateContact",
    "CustomPropertyValue",
    "DataResponse",
    "DecodeError",
    "EmailBodyFormat",
    "EmptyResponse",
    "IndiePitcher",
    "IndiePitcherError",
    "PagedDataResponse",
    "RequestError",
    "RequestTimeoutError",
    "SendEmail",
    "SendEmailToContact",
    "SendEmailToContactList",
    "TransportError",
    "UpdateContact",
    "ValidationError",
]
