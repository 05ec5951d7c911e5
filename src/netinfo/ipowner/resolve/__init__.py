"""
Ownership Resolution

This package provides the RDAP resolution engine used to find the registrant of an IP
address.

Key Components:
- address.py: Private address classification and bit-precise CIDR prefix matching
- bootstrap.py: IANA RDAP bootstrap registry with TTL caching
- rdap.py: Authority resolution, RDAP queries and ownership extraction

The resolution flow follows these steps:
1. Classify the address; private addresses never leave the process
2. Load the bootstrap document for the address family (IPv4 or IPv6)
3. Select the first service entry whose prefixes cover the address, preferring HTTPS
4. Query the selected server, falling back to the RIPE NCC server when none matches
5. Extract the network name and the first description remark
"""
