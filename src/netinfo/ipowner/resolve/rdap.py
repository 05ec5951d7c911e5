"""RDAP authority resolution and ownership lookup.

Finds the RDAP server authoritative for an address through the IANA bootstrap
registry, queries it, and projects the response down to a name and organization.
"""

import logging
from typing import Optional, Sequence, Union

import sentry_sdk
from aiohttp import ClientError, ClientSession, ClientTimeout
from pydantic import ValidationError

from netinfo.ipowner.model.rdap import (
    Ownership,
    OwnershipResult,
    RdapObject,
    ResolutionError,
)
from netinfo.ipowner.resolve.address import (
    address_family,
    ip_in_prefix,
    is_private_address,
    is_valid_address,
)
from netinfo.ipowner.resolve.bootstrap import BootstrapFetchError, BootstrapRegistry

logger = logging.getLogger(__name__)

DEFAULT_RDAP_SERVER = "https://rdap.db.ripe.net/ip/"
"""RDAP base URL used when no bootstrap entry covers an address."""

INTERNAL_NAME = "internal"


def select_server_url(server_urls: Sequence[str]) -> Optional[str]:
    """Pick the HTTPS base URL of a service entry, else its first URL.

    Args:
        server_urls: Ordered base URLs of a bootstrap service entry

    Returns:
        Selected URL, None if the entry lists no URLs
    """
    https_url = next((url for url in server_urls if url.startswith("https")), None)
    if https_url is not None:
        return https_url
    return next(iter(server_urls), None)


async def resolve_server(
    session: ClientSession,
    registry: BootstrapRegistry,
    ip: str,
    default_server: str = DEFAULT_RDAP_SERVER,
) -> str:
    """Resolve the RDAP base URL authoritative for an address.

    Scans the bootstrap services in document order; the first entry with a prefix
    covering the address wins. Falls back to the default server when the address is
    malformed, nothing matches or the bootstrap document is unavailable.

    Args:
        session: HTTP client session
        registry: Bootstrap registry cache
        ip: Textual IPv4 or IPv6 address
        default_server: Base URL used as fallback

    Returns:
        RDAP base URL, never None
    """
    if not is_valid_address(ip):
        logger.warning("Invalid address %r, using %s", ip, default_server)
        return default_server

    try:
        document = await registry.get(session, address_family(ip))
    except BootstrapFetchError as e:
        sentry_sdk.capture_exception(e)
        logger.error("RDAP bootstrap unavailable, using %s: %s", default_server, e)
        return default_server

    for prefixes, server_urls in document.services:
        if any(ip_in_prefix(ip, prefix) for prefix in prefixes):
            server_url = select_server_url(server_urls)
            if server_url is not None:
                return server_url

    return default_server


def build_rdap_url(base_url: str, ip: str) -> str:
    """Build the RDAP IP query URL for a base URL.

    Base URLs ending in "/" get the "ip/" path segment appended, others only a
    separating slash.
    """
    if base_url.endswith("/"):
        return f"{base_url}ip/{ip}"
    return f"{base_url}/{ip}"


async def query_rdap(
    session: ClientSession,
    registry: BootstrapRegistry,
    ip: str,
    default_server: str = DEFAULT_RDAP_SERVER,
    timeout: Optional[float] = None,
) -> Optional[RdapObject]:
    """Query the authoritative RDAP server for an address.

    Args:
        session: HTTP client session
        registry: Bootstrap registry cache
        ip: Textual IPv4 or IPv6 address
        default_server: Base URL used when no authority is found
        timeout: Total request timeout in seconds

    Returns:
        RdapObject if successful, None if the request fails or the body is invalid
    """
    base_url = await resolve_server(session, registry, ip, default_server)
    rdap_url = build_rdap_url(base_url, ip)
    logger.info("Using RDAP endpoint: %s", rdap_url)

    request_options = {"timeout": ClientTimeout(total=timeout)} if timeout else {}
    try:
        async with session.get(rdap_url, **request_options) as resp:
            if not 200 <= resp.status < 300:
                logger.warning("RDAP request to %s returned %d", rdap_url, resp.status)
                return None
            body = await resp.json(content_type=None)
    except (ClientError, TimeoutError, ValueError) as e:
        sentry_sdk.capture_exception(e)
        logger.error("RDAP request to %s failed: %s", rdap_url, e)
        return None

    try:
        return RdapObject.model_validate(body)
    except ValidationError as e:
        logger.error("RDAP response from %s is invalid: %s", rdap_url, e)
        return None


def extract_ownership(rdap_object: RdapObject) -> Ownership:
    """Project an RDAP object down to its name and organization.

    The organization is the first line of the first "description" remark that has
    any lines.
    """
    organization = ""
    for remark in rdap_object.remarks:
        if remark.title == "description" and len(remark.description) > 0:
            organization = remark.description[0]
            break
    return Ownership(name=rdap_object.name or "", organization=organization)


async def resolve_ownership(
    session: ClientSession,
    registry: BootstrapRegistry,
    ip: str,
    default_server: str = DEFAULT_RDAP_SERVER,
    timeout: Optional[float] = None,
) -> Union[OwnershipResult, ResolutionError]:
    """Resolve the registrant name and organization for an address.

    Private addresses resolve to the "internal" name without any network access.

    Args:
        session: HTTP client session
        registry: Bootstrap registry cache
        ip: Textual IPv4 or IPv6 address
        default_server: Base URL used when no authority is found
        timeout: Total timeout in seconds for each external request

    Returns:
        OwnershipResult on success, ResolutionError if the RDAP query failed
    """
    if is_private_address(ip):
        return OwnershipResult(client_ip=ip, name=INTERNAL_NAME, organization="")

    rdap_object = await query_rdap(session, registry, ip, default_server, timeout)
    if rdap_object is None:
        return ResolutionError(client_ip=ip)

    ownership = extract_ownership(rdap_object)
    return OwnershipResult(
        client_ip=ip, name=ownership.name, organization=ownership.organization
    )


async def fetch_raw_rdap(
    session: ClientSession,
    registry: BootstrapRegistry,
    ip: str,
    default_server: str = DEFAULT_RDAP_SERVER,
    timeout: Optional[float] = None,
) -> Optional[RdapObject]:
    """Fetch the unprocessed RDAP object for an address."""
    return await query_rdap(session, registry, ip, default_server, timeout)
