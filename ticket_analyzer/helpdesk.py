"""Helpdesk (Zendesk API v2) client used to populate the ticket store.

Authentication follows Zendesk's API-token convention: HTTP Basic with the
username ``{email}/token`` and the API token as password. Fetching is
independent of classification and strictly sequential: the ticket list first,
then each ticket's comment thread one at a time.
"""

import base64
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .config import AnalyzerConfig
from .errors import AuthError, ConfigurationError, HttpError, NetworkError, ParseError, TicketAnalyzerError
from .models import Comment, Ticket

logger = logging.getLogger("ticket-analyzer.helpdesk")

LOCAL_BASE_URL = "http://localhost:3001"
MAX_PAGES = 100


def resolve_base_url(subdomain: str) -> str:
    """Turn the configured subdomain into an API base URL.

    Empty or ``localhost`` points at the local mock helpdesk, a full
    ``http(s)://`` URL is used as given, anything else is a Zendesk subdomain.
    """
    subdomain = (subdomain or "").strip()
    if not subdomain or subdomain == "localhost":
        return LOCAL_BASE_URL
    if subdomain.startswith(("http://", "https://")):
        return subdomain.rstrip("/")
    return f"https://{subdomain}.zendesk.com"


def basic_auth_header(email: str, api_token: str) -> str:
    credentials = base64.b64encode(f"{email}/token:{api_token}".encode("utf-8")).decode("ascii")
    return f"Basic {credentials}"


def cutoff_date(lookback_days: int, today: Optional[date] = None) -> str:
    """Return ``today - lookback_days`` formatted as ``YYYY-MM-DD``."""
    return ((today or date.today()) - timedelta(days=lookback_days)).isoformat()


class HelpdeskClient:
    """Read-only client for the helpdesk ticket and comment endpoints.

    Attributes:
        config: Analyzer configuration with subdomain and credentials.
        base_url: Resolved API base URL.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.config = config
        self.base_url = resolve_base_url(config.helpdesk_subdomain)
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        if not self.config.has_helpdesk_credentials:
            raise ConfigurationError("Please configure helpdesk API credentials first")
        return httpx.AsyncClient(
            base_url=self.base_url,
            transport=self._transport,
            timeout=self.timeout,
            headers={
                "Authorization": basic_auth_header(self.config.helpdesk_email, self.config.helpdesk_token),
                "Content-Type": "application/json",
            },
        )

    async def _get(self, client: httpx.AsyncClient, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = await client.get(url, params=params)
        except httpx.RequestError as e:
            raise NetworkError(f"Network error calling helpdesk API: {e}") from e

        if response.status_code == 401:
            raise AuthError("Authentication failed. Check your credentials.")
        if not response.is_success:
            raise HttpError(
                response.status_code,
                response.text[:100],
                f"API error: {response.status_code} {response.reason_phrase}",
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ParseError("Invalid response from helpdesk API") from e
        if not isinstance(data, dict):
            raise ParseError("Invalid response from helpdesk API")
        return data

    async def _paginate(
        self,
        client: httpx.AsyncClient,
        url: str,
        key: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Collect ``key`` records from ``url`` and every ``next_page`` after it."""
        records: List[Dict[str, Any]] = []
        next_url: Optional[str] = url
        for _ in range(MAX_PAGES):
            data = await self._get(client, next_url, params)
            if not isinstance(data.get(key), list):
                raise ParseError("Invalid response from helpdesk API")
            records.extend(data[key])
            next_url = data.get("next_page")
            params = None
            if not next_url:
                break
        else:
            logger.warning(f"Stopped following {key} pages of {url} after {MAX_PAGES} pages")
        return records

    async def _list_tickets(self, client: httpx.AsyncClient, created_after: str) -> List[Dict[str, Any]]:
        return await self._paginate(client, "/api/v2/tickets.json", "tickets", {"created_after": created_after})

    async def _comments(self, client: httpx.AsyncClient, ticket_id: int) -> List[Comment]:
        records = await self._paginate(client, f"/api/v2/tickets/{ticket_id}/comments.json", "comments")
        try:
            return [Comment.model_validate(comment) for comment in records]
        except ValidationError as e:
            raise ParseError(f"Invalid comment record for ticket {ticket_id}: {e}") from e

    @staticmethod
    def _ticket(record: Any) -> Ticket:
        try:
            return Ticket.model_validate(record)
        except ValidationError as e:
            raise ParseError(f"Invalid ticket record from helpdesk API: {e}") from e

    async def fetch_recent(self, lookback_days: int, today: Optional[date] = None) -> List[Ticket]:
        """Fetch tickets created within the lookback window, with their comments.

        A comment thread that fails to load is logged and replaced by an empty
        list; it does not fail the fetch.

        Args:
            lookback_days: Number of days to look back from ``today``.
            today: Reference date; defaults to the current local date.

        Returns:
            List[Ticket]: Tickets in API order, each with comments embedded.

        Raises:
            ConfigurationError: If helpdesk credentials are missing.
            AuthError: If the API rejects the credentials.
            HttpError: If the ticket listing returns another non-2xx status.
            NetworkError: If the API cannot be reached.
            ParseError: If the listing response has no ticket array or a ticket
                record is malformed.
        """
        created_after = cutoff_date(lookback_days, today)
        async with self._client() as client:
            records = await self._list_tickets(client, created_after)
            logger.info(f"Fetched {len(records)} tickets created after {created_after}. Loading comments...")

            tickets: List[Ticket] = []
            for index, record in enumerate(records, 1):
                ticket = self._ticket(record)
                try:
                    ticket.comments = await self._comments(client, ticket.id)
                except TicketAnalyzerError as e:
                    logger.warning(f"Failed to fetch comments for ticket {ticket.id}: {e}")
                    ticket.comments = []
                tickets.append(ticket)
                logger.debug(f"Loading comments... {index}/{len(records)}")
        return tickets

    async def get_ticket(self, ticket_id: int) -> Ticket:
        """Fetch a single ticket (without comments).

        Raises:
            HttpError: With status 404 if the ticket does not exist.
        """
        async with self._client() as client:
            data = await self._get(client, f"/api/v2/tickets/{ticket_id}.json")
        if not isinstance(data.get("ticket"), dict):
            raise ParseError("Invalid response from helpdesk API")
        return self._ticket(data["ticket"])

    async def get_comments(self, ticket_id: int) -> List[Comment]:
        async with self._client() as client:
            return await self._comments(client, ticket_id)

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """Run a helpdesk search query and return the raw result records."""
        async with self._client() as client:
            data = await self._get(client, "/api/v2/search.json", {"query": query})
        if not isinstance(data.get("results"), list):
            raise ParseError("Invalid response from helpdesk API")
        return data["results"]
