"""
IndiePitcher SDK - High-level client with typed operations.

Built on top of the core APIClient. Only intended for server-side use: never
ship the secret API key to browsers or mobile apps.
"""

import builtins
from collections.abc import Iterator

from indiepitcher.core.client import DEFAULT_TIMEOUT, APIClient
from indiepitcher.core.errors import ValidationError
from indiepitcher.core.transport import HTTPTransport
from indiepitcher.core.types import (
    Contact,
    ContactList,
    ContactListPortalSession,
    CreateContact,
    DataResponse,
    EmptyResponse,
    PagedDataResponse,
    SendEmail,
    SendEmailToContact,
    SendEmailToContactList,
    UpdateContact,
)

MAX_BATCH_SIZE = 100


def _data_parser(item_parser):
    return lambda payload: DataResponse.from_dict(payload, item_parser)


def _paged_parser(item_parser):
    return lambda payload: PagedDataResponse.from_dict(payload, item_parser)


def _page_params(page: int, per_page: int) -> dict[str, int]:
    """Build list query parameters; pages are numbered from 1 on the wire."""
    if page < 1:
        raise ValidationError("page must be >= 1 (the first page is 1)", details={"page": page})
    if per_page < 1:
        raise ValidationError("per_page must be >= 1", details={"per_page": per_page})
    return {"page": page, "per": per_page}


class IndiePitcher:
    """
    High-level IndiePitcher API client.

    Example:
        client = IndiePitcher(api_key="sc_...")

        client.contacts.create(CreateContact(email="jane@example.com", name="Jane"))
        page = client.contacts.list(page=1, per_page=50)

        client.emails.send(SendEmail(to="jane@example.com", subject="Hi", body="**Hello**"))

    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: HTTPTransport | None = None,
    ):
        """
        Initialize the IndiePitcher client.

        Args:
            api_key: Secret project API key (or INDIEPITCHER_API_KEY env var)
            base_url: API base URL (or INDIEPITCHER_BASE_URL env var)
            timeout: Request timeout in seconds
            transport: HTTP transport to share between clients; defaults to urllib

        """
        self._client = APIClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

        # Sub-clients for different domains
        self.contacts = ContactOperations(self._client)
        self.emails = EmailOperations(self._client)
        self.contact_lists = ContactListOperations(self._client)

    @property
    def api_key(self) -> str | None:
        """The configured API key."""
        return self._client.api_key

    @property
    def base_url(self) -> str:
        """The API base URL requests are sent to."""
        return self._client.base_url


# =============================================================================
# Contact Operations
# =============================================================================


class ContactOperations:
    """Operations for managing contacts."""

    def __init__(self, client: APIClient):
        self._client = client

    def create(self, contact: CreateContact) -> DataResponse[Contact]:
        """
        Add a new contact, or update an existing one if update_if_exists is set.

        Args:
            contact: Contact properties

        Returns:
            DataResponse containing the created Contact

        """
        return self._client.post("/contacts/create", contact.to_dict(), parser=_data_parser(Contact.from_dict))

    def create_many(self, contacts: builtins.list[CreateContact]) -> EmptyResponse:
        """
        Add up to 100 contacts with a single call.

        Contacts with update_if_exists set are updated if they already exist.

        Args:
            contacts: Contact properties

        Returns:
            EmptyResponse

        Raises:
            ValidationError: If more than 100 contacts are given

        """
        if len(contacts) > MAX_BATCH_SIZE:
            raise ValidationError(
                f"At most {MAX_BATCH_SIZE} contacts can be created per call",
                details={"count": len(contacts)},
            )
        return self._client.post(
            "/contacts/create_many",
            [contact.to_dict() for contact in contacts],
            parser=EmptyResponse.from_dict,
        )

    def update(self, contact: UpdateContact) -> DataResponse[Contact]:
        """
        Update the contact with the given email.

        Fails if no such contact exists; use create() in that case.

        Args:
            contact: Contact properties to update

        Returns:
            DataResponse containing the updated Contact

        """
        return self._client.patch("/contacts/update", contact.to_dict(), parser=_data_parser(Contact.from_dict))

    def delete(self, email: str) -> EmptyResponse:
        """
        Remove the contact with the given email from the contact list.

        Args:
            email: Email address of the contact

        Returns:
            EmptyResponse

        """
        return self._client.post("/contacts/delete", {"email": email}, parser=EmptyResponse.from_dict)

    def list(self, page: int = 1, per_page: int = 10) -> PagedDataResponse[Contact]:
        """
        List contacts, one page at a time.

        Args:
            page: Page to fetch, the first page is 1
            per_page: Contacts per page

        Returns:
            PagedDataResponse containing Contacts

        """
        return self._client.get(
            "/contacts",
            _page_params(page, per_page),
            parser=_paged_parser(Contact.from_dict),
        )

    def iterate(self, per_page: int = 100) -> Iterator[Contact]:
        """
        Iterate through all contacts, fetching pages lazily.

        Each page is a separate list() call.
        """
        page = 1
        while True:
            result = self.list(page=page, per_page=per_page)
            yield from result.data
            if not result.has_more or not result.data:
                break
            page += 1


# =============================================================================
# Email Operations
# =============================================================================


class EmailOperations:
    """Operations for sending emails."""

    def __init__(self, client: APIClient):
        self._client = client

    def send(self, email: SendEmail) -> EmptyResponse:
        """
        Send a transactional email to any address.

        The recipient does not have to be a contact, e.g. someone invited to a
        team who has not signed up yet.

        Args:
            email: Recipient, subject and body

        Returns:
            EmptyResponse

        """
        return self._client.post("/email/transactional", email.to_dict(), parser=EmptyResponse.from_dict)

    def send_to_contact(self, email: SendEmailToContact) -> EmptyResponse:
        """
        Send a personalized email to one or more (up to 100) contacts.

        All recipients must be contacts subscribed to `email.list`. Sending can
        be delayed with delay_seconds or delay_until_date.

        Args:
            email: Recipients, content and scheduling

        Returns:
            EmptyResponse

        Raises:
            ValidationError: If recipients are missing, ambiguous or too many

        """
        if (email.contact_email is None) == (email.contact_emails is None):
            raise ValidationError("Provide exactly one of contact_email or contact_emails")
        if email.contact_emails is not None and not 0 < len(email.contact_emails) <= MAX_BATCH_SIZE:
            raise ValidationError(
                f"contact_emails must hold between 1 and {MAX_BATCH_SIZE} addresses",
                details={"count": len(email.contact_emails)},
            )
        return self._client.post("/email/contact", email.to_dict(), parser=EmptyResponse.from_dict)

    def send_to_contact_list(self, email: SendEmailToContactList) -> EmptyResponse:
        """
        Send a personalized email to every contact subscribed to a list.

        This is the way to send a newsletter. Pass list="important" to reach
        all contacts.

        Args:
            email: Target list, content and scheduling

        Returns:
            EmptyResponse

        """
        return self._client.post("/email/contact_list", email.to_dict(), parser=EmptyResponse.from_dict)


# =============================================================================
# Contact List Operations
# =============================================================================


class ContactListOperations:
    """Operations for contact lists and subscription portals."""

    def __init__(self, client: APIClient):
        self._client = client

    def list(self, page: int = 1, per_page: int = 10) -> PagedDataResponse[ContactList]:
        """
        List the contact lists contacts can subscribe to.

        Args:
            page: Page to fetch, the first page is 1
            per_page: Lists per page

        Returns:
            PagedDataResponse containing ContactLists

        """
        return self._client.get(
            "/contact_lists",
            _page_params(page, per_page),
            parser=_paged_parser(ContactList.from_dict),
        )

    def iterate(self, per_page: int = 100) -> Iterator[ContactList]:
        """Iterate through all contact lists, one list() call per page."""
        page = 1
        while True:
            result = self.list(page=page, per_page=per_page)
            yield from result.data
            if not result.has_more or not result.data:
                break
            page += 1

    def create_portal_session(self, contact_email: str, return_url: str) -> DataResponse[ContactListPortalSession]:
        """
        Create a page where a contact can manage their list subscriptions.

        The returned URL is valid for 30 minutes.

        Args:
            contact_email: Email of the contact the session is for
            return_url: Where to send the contact when they are done or the
                session has expired

        Returns:
            DataResponse containing the ContactListPortalSession

        """
        return self._client.post(
            "/contact_lists/portal_session",
            {"contactEmail": contact_email, "returnURL": return_url},
            parser=_data_parser(ContactListPortalSession.from_dict),
        )
