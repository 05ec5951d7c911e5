"""
Configuration Module for the IP Owner Service

This module defines the configuration system for the IP owner service, using Pydantic for
settings validation and dependency injection through AppKeys.

The Settings class serves as the central configuration point, loaded from environment
variables with defaults suitable for development environments. Request handlers access
settings and shared resources (the HTTP client session, the bootstrap registry and the
metrics client) through typed AppKeys.

Key configuration areas include:
- Service networking and CORS
- RDAP bootstrap sources and the fallback RDAP server
- Timeouts and response caching
- Monitoring and error reporting
"""

from typing import Final, List, Optional
import logging
from pydantic import Field
from pydantic_settings import BaseSettings
from aiohttp import web
from aiohttp import ClientSession

from netinfo.ipowner.app.metrics import MetricsClient
from netinfo.ipowner.resolve.bootstrap import (
    BOOTSTRAP_TTL,
    IANA_IPV4_BOOTSTRAP_URL,
    IANA_IPV6_BOOTSTRAP_URL,
    BootstrapRegistry,
)
from netinfo.ipowner.resolve.rdap import DEFAULT_RDAP_SERVER


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the IP owner service.

    This class uses Pydantic's BaseSettings to automatically load values from environment
    variables, with sensible defaults for development environments. For example, the
    request timeout can be set with the HTTP_TIMEOUT environment variable.
    """

    debug: bool = False
    """
    Enable debug mode for verbose logging and outbound request tracing.
    Set with DEBUG=true environment variable.
    """

    allowed_domains: str = "*"
    """
    Comma-separated list of origins allowed for CORS, or "*" for any origin.
    Set with ALLOWED_DOMAINS environment variable.
    """

    http_port: int = Field(alias="port", default=5100)
    """
    HTTP port for the service to listen on.
    Set with PORT environment variable.
    """

    sentry_dsn: Optional[str] = None
    """
    Sentry DSN for error reporting. Optional, no error reporting if not set.
    Set with SENTRY_DSN environment variable.
    """

    ipv4_bootstrap_url: str = IANA_IPV4_BOOTSTRAP_URL
    """IANA RDAP bootstrap registry for IPv4 address space."""

    ipv6_bootstrap_url: str = IANA_IPV6_BOOTSTRAP_URL
    """IANA RDAP bootstrap registry for IPv6 address space."""

    default_rdap_server: str = DEFAULT_RDAP_SERVER
    """
    RDAP base URL used when no bootstrap entry covers an address or the bootstrap
    registry is unavailable.
    """

    bootstrap_ttl: int = BOOTSTRAP_TTL
    """
    Seconds a bootstrap document is reused before it is fetched again.
    Default: 86400 (24 hours)
    """

    http_timeout: float = 10.0
    """
    Total timeout in seconds for each outbound bootstrap or RDAP request.
    Set with HTTP_TIMEOUT environment variable.
    """

    cache_max_age: int = 3600
    """
    max-age in seconds of the Cache-Control header on successful lookups, letting
    edge caches absorb repeated requests for the same address.
    """

    metrics_backend: str = "telegraf"
    """
    Metrics backend, either "telegraf" or "none".
    Set with METRICS_BACKEND environment variable.
    """

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """
    StatsD/Telegraf host for metrics collection.
    Set with TELEGRAF_HOST environment variable.
    """

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """
    StatsD/Telegraf port for metrics collection.
    Set with TELEGRAF_PORT environment variable.
    """

    statsd_prefix: str = "ipowner"
    """
    Prefix for all StatsD metrics from this service.
    Set with STATSD_PREFIX environment variable.
    """

    @property
    def allowed_origins(self) -> List[str]:
        return [
            origin.strip()
            for origin in self.allowed_domains.split(",")
            if len(origin.strip()) > 0
        ]


# Application context keys for dependency injection
SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

SessionAppKey: Final = web.AppKey("http_session", ClientSession)
"""AppKey for accessing the shared aiohttp client session"""

BootstrapRegistryAppKey: Final = web.AppKey("bootstrap_registry", BootstrapRegistry)
"""AppKey for accessing the process-wide RDAP bootstrap registry"""

MetricsClientAppKey: Final = web.AppKey("metrics_client", MetricsClient)
"""AppKey for accessing the metrics client"""
