"""IANA RDAP bootstrap registry.

Fetches and caches the IANA service registries (RFC 9224) that map IPv4 and IPv6
prefixes to the base URLs of the RDAP servers authoritative for them.
"""

import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

import sentry_sdk
from aiohttp import ClientError, ClientSession, ClientTimeout
from pydantic import BaseModel, ValidationError

from netinfo.ipowner.resolve.address import AddressFamily

logger = logging.getLogger(__name__)

IANA_IPV4_BOOTSTRAP_URL = "https://data.iana.org/rdap/ipv4.json"
IANA_IPV6_BOOTSTRAP_URL = "https://data.iana.org/rdap/ipv6.json"

BOOTSTRAP_TTL = 86400
"""Seconds a fetched bootstrap document is reused before it is refreshed."""


class BootstrapFetchError(Exception):
    """Raised when a bootstrap document can't be retrieved or parsed."""


class BootstrapDocument(BaseModel):
    """IANA bootstrap service registry for one address family.

    Each service entry pairs a list of CIDR prefixes with the ordered list of RDAP
    base URLs serving them.
    """

    description: Optional[str] = None
    publication: Optional[str] = None
    version: Optional[str] = None
    services: List[Tuple[List[str], List[str]]]
    fetched_at: float = 0.0


class BootstrapRegistry:
    """
    Per-family cache of IANA bootstrap documents.

    A cached document is reused while it is younger than the TTL. An expired document
    is refreshed on the next lookup and only replaced when the refresh succeeds, so a
    failed refresh keeps serving the stale copy. Documents are replaced wholesale and
    never mutated, which makes concurrent refreshes safe: the last writer wins.
    """

    def __init__(
        self,
        ipv4_url: str = IANA_IPV4_BOOTSTRAP_URL,
        ipv6_url: str = IANA_IPV6_BOOTSTRAP_URL,
        ttl: float = BOOTSTRAP_TTL,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._urls: Dict[AddressFamily, str] = {
            AddressFamily.ipv4: ipv4_url,
            AddressFamily.ipv6: ipv6_url,
        }
        self._ttl = ttl
        self._timeout = timeout
        self._clock = clock
        self._documents: Dict[AddressFamily, BootstrapDocument] = {}

    def url(self, family: AddressFamily) -> str:
        return self._urls[family]

    def cached(self, family: AddressFamily) -> Optional[BootstrapDocument]:
        return self._documents.get(family)

    def is_fresh(self, document: BootstrapDocument) -> bool:
        return self._clock() - document.fetched_at < self._ttl

    async def fetch(
        self, session: ClientSession, family: AddressFamily
    ) -> BootstrapDocument:
        """Download and parse the bootstrap document for a family.

        Args:
            session: HTTP client session
            family: Address family of the registry to fetch

        Returns:
            Parsed BootstrapDocument stamped with the current clock reading

        Raises:
            BootstrapFetchError: If the document is unreachable or malformed
        """
        url = self.url(family)
        request_options = (
            {"timeout": ClientTimeout(total=self._timeout)} if self._timeout else {}
        )
        try:
            async with session.get(url, **request_options) as resp:
                if resp.status != 200:
                    raise BootstrapFetchError(
                        f"Bootstrap fetch from {url} failed with status {resp.status}"
                    )
                body = await resp.json(content_type=None)
        except BootstrapFetchError:
            raise
        except (ClientError, TimeoutError, ValueError) as e:
            raise BootstrapFetchError(f"Bootstrap fetch from {url} failed: {e}") from e

        if not isinstance(body, dict):
            raise BootstrapFetchError(f"Bootstrap document from {url} is not an object")
        try:
            return BootstrapDocument.model_validate(
                {**body, "fetched_at": self._clock()}
            )
        except ValidationError as e:
            raise BootstrapFetchError(f"Bootstrap document from {url} is invalid") from e

    async def get(
        self, session: ClientSession, family: AddressFamily
    ) -> BootstrapDocument:
        """Return the bootstrap document for a family, fetching it when needed.

        Args:
            session: HTTP client session
            family: Address family to look up

        Returns:
            Cached or freshly fetched BootstrapDocument

        Raises:
            BootstrapFetchError: If nothing is cached and the fetch fails
        """
        document = self._documents.get(family)
        if document is not None and self.is_fresh(document):
            return document

        try:
            fresh = await self.fetch(session, family)
        except BootstrapFetchError as e:
            if document is None:
                raise
            sentry_sdk.capture_exception(e)
            logger.warning(
                "Serving stale %s bootstrap document after refresh failure: %s",
                family.name,
                e,
            )
            return document

        self._documents[family] = fresh
        logger.info(
            "Loaded %s bootstrap document with %d services",
            family.name,
            len(fresh.services),
        )
        return fresh
