"""
IP Owner Application Layer

This package implements the thin web layer in front of the resolution core, handling HTTP
requests and responses using the aiohttp framework.

Key Components:
- cli.py: Entry point for running the application
- server.py: Web server configuration and middleware setup
- config.py: Configuration management using Pydantic settings
- handlers/: Request handlers for the ownership and internal endpoints
- metrics.py: Metrics client abstraction over StatsD
- cors.py: CORS handling for cross-origin requests

The application uses several middleware layers:
- Statsd middleware for metrics collection
- Sentry middleware for error reporting
- CORS middleware for handling cross-origin requests

It provides the following main endpoints:
- Ownership lookup (/ and /ip/{ip})
- Raw RDAP pass-through (/rdap and /rdap/{ip})
- Liveness probe (/internal/alive)
"""
