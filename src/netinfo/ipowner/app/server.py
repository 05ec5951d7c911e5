import logging
from time import time
from typing import Optional
from aiohttp import web
import aiohttp
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from netinfo.ipowner.app.config import (
    BootstrapRegistryAppKey,
    MetricsClientAppKey,
    SessionAppKey,
    Settings,
    SettingsAppKey,
)
from netinfo.ipowner.app.cors import get_cors_headers
from netinfo.ipowner.app.handlers.internal import handle_internal_alive
from netinfo.ipowner.app.handlers.ownership import handle_ownership, handle_raw_rdap
from netinfo.ipowner.app.metrics import create_metrics_client
from netinfo.ipowner.resolve.bootstrap import BootstrapRegistry

logger = logging.getLogger(__name__)


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    trace_config = aiohttp.TraceConfig()

    if settings.debug:

        async def on_request_start(
            session, trace_config_ctx, params: aiohttp.TraceRequestStartParams
        ):
            logging.info("Starting request: %s", params)

        async def on_request_end(session, trace_config_ctx, params):
            logging.info("Ending request: %s", params)

        trace_config.on_request_start.append(on_request_start)
        trace_config.on_request_end.append(on_request_end)

    app[SessionAppKey] = aiohttp.ClientSession(trace_configs=[trace_config])

    app[BootstrapRegistryAppKey] = BootstrapRegistry(
        ipv4_url=settings.ipv4_bootstrap_url,
        ipv6_url=settings.ipv6_bootstrap_url,
        ttl=settings.bootstrap_ttl,
        timeout=settings.http_timeout,
    )

    app[MetricsClientAppKey] = await create_metrics_client(
        settings.metrics_backend,
        host=settings.statsd_host,
        port=settings.statsd_port,
        prefix=settings.statsd_prefix,
        debug=settings.debug,
    )

    logger.info("Startup complete")

    yield

    logger.info("Shutting down")

    await app[SessionAppKey].close()
    await app[MetricsClientAppKey].close()


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        response = await handler(request)
        return response
    except web.HTTPException:
        raise
    except Exception as e:
        sentry_sdk.capture_exception(e)
        raise e


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    metrics_client = request.app[MetricsClientAppKey]
    request_method: str = request.method
    # Route templates keep per-address paths out of the tag set
    resource = request.match_info.route.resource
    request_path = resource.canonical if resource is not None else request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except Exception as e:
        metrics_client.increment(
            "server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        metrics_client.timer(
            "server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        metrics_client.increment(
            "server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


@web.middleware
async def cors_middleware(request: web.Request, handler):
    settings = request.app[SettingsAppKey]
    cors_headers = get_cors_headers(
        request.headers.get("Origin"), settings.allowed_origins, settings.debug
    )

    if request.method == "OPTIONS":
        return web.Response(status=204, headers=cors_headers)

    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(cors_headers)
        raise e
    response.headers.update(cors_headers)
    return response


async def start_web_server(settings: Optional[Settings] = None):

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=True,
            integrations=[AioHttpIntegration()]
        )
    app = web.Application(
        middlewares=[statsd_middleware, sentry_middleware, cors_middleware]
    )

    app[SettingsAppKey] = settings

    app.add_routes(
        [
            web.get("/", handle_ownership),
            web.get("/ip/{ip}", handle_ownership),
            web.get("/rdap", handle_raw_rdap),
            web.get("/rdap/{ip}", handle_raw_rdap),
        ]
    )

    app.add_routes(
        [
            web.get("/internal/alive", handle_internal_alive),
        ]
    )

    app.cleanup_ctx.append(background_tasks)

    return app
