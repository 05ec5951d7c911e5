"""Ownership lookup endpoints.

Resolves the owner of the caller's address (or of an address given in the path) and
passes raw RDAP objects through.
"""

import logging
from typing import Optional

from aiohttp import web

from netinfo.ipowner.app.config import (
    BootstrapRegistryAppKey,
    MetricsClientAppKey,
    SessionAppKey,
    SettingsAppKey,
)
from netinfo.ipowner.model.rdap import ResolutionError
from netinfo.ipowner.resolve.address import is_private_address, is_valid_address
from netinfo.ipowner.resolve.rdap import fetch_raw_rdap, resolve_ownership

logger = logging.getLogger(__name__)

NO_STORE = "no-store"


def client_ip_helper(request: web.Request) -> Optional[str]:
    """Determine the address to look up for a request.

    An address in the path wins, then the CF-Connecting-IP header, then the first
    X-Forwarded-For entry, then the peer address.
    """
    path_ip = request.match_info.get("ip")
    if path_ip:
        return path_ip.strip()

    connecting_ip = request.headers.get("CF-Connecting-IP", "").strip()
    if len(connecting_ip) > 0:
        return connecting_ip

    forwarded_for = request.headers.get("X-Forwarded-For", "")
    forwarded_ip = forwarded_for.split(",")[0].strip()
    if len(forwarded_ip) > 0:
        return forwarded_ip

    return request.remote


def _address_error(ip: Optional[str]) -> Optional[web.Response]:
    if ip is None or len(ip) == 0:
        return web.json_response(
            {"error": "no IP"}, status=400, headers={"Cache-Control": NO_STORE}
        )
    if not is_valid_address(ip):
        return web.json_response(
            {"error": "invalid IP", "clientIP": ip},
            status=400,
            headers={"Cache-Control": NO_STORE},
        )
    return None


async def handle_ownership(request: web.Request):
    settings = request.app[SettingsAppKey]
    metrics_client = request.app[MetricsClientAppKey]

    ip = client_ip_helper(request)
    error_response = _address_error(ip)
    if error_response is not None:
        return error_response

    result = await resolve_ownership(
        request.app[SessionAppKey],
        request.app[BootstrapRegistryAppKey],
        ip,
        default_server=settings.default_rdap_server,
        timeout=settings.http_timeout,
    )

    if isinstance(result, ResolutionError):
        metrics_client.increment("resolve.outcome", 1, tag_dict={"outcome": "failed"})
        return web.json_response(
            result.model_dump(by_alias=True),
            status=502,
            headers={"Cache-Control": NO_STORE},
        )

    outcome = "private" if is_private_address(ip) else "resolved"
    metrics_client.increment("resolve.outcome", 1, tag_dict={"outcome": outcome})
    return web.json_response(
        result.model_dump(by_alias=True),
        headers={"Cache-Control": f"public, max-age={settings.cache_max_age}"},
    )


async def handle_raw_rdap(request: web.Request):
    settings = request.app[SettingsAppKey]

    ip = client_ip_helper(request)
    error_response = _address_error(ip)
    if error_response is not None:
        return error_response

    rdap_object = await fetch_raw_rdap(
        request.app[SessionAppKey],
        request.app[BootstrapRegistryAppKey],
        ip,
        default_server=settings.default_rdap_server,
        timeout=settings.http_timeout,
    )
    if rdap_object is None:
        return web.json_response(
            ResolutionError(client_ip=ip).model_dump(by_alias=True),
            status=502,
            headers={"Cache-Control": NO_STORE},
        )

    return web.json_response(
        rdap_object.model_dump(exclude_unset=True),
        headers={"Cache-Control": f"public, max-age={settings.cache_max_age}"},
    )
