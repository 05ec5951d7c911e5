"""
IP Owner - RDAP based IP ownership resolution

This module implements a small web service that tells a client who owns its IP address.
Ownership is looked up through the Registration Data Access Protocol (RDAP), using the
IANA bootstrap registries to find the regional registry authoritative for the address.

Key Components:
- app: Web application layer with request handlers and server configuration
- model: Pydantic models for RDAP responses and ownership results
- resolve: The resolution core (address classification, bootstrap registry, RDAP client)

Resolution Flow:
1. Private, loopback and link-local addresses short-circuit to "internal"
2. The IANA bootstrap document for the address family selects the authoritative server
3. The server's RDAP IP network object is fetched
4. The name and organization are projected out of the response

Bootstrap documents are cached in memory for 24 hours. Every failure inside the core is
converted into a documented fallback value instead of propagating to the request.
"""
