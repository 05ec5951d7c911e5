"""IP address classification and CIDR prefix matching.

Classifies textual addresses as private or public without any network access and
decides whether an address falls inside a CIDR prefix, bit for bit, for both IPv4
and IPv6.
"""

import logging
from enum import IntEnum
from ipaddress import IPv4Address, IPv6Address
from typing import List, NamedTuple, Optional, Sequence

logger = logging.getLogger(__name__)


class AddressFamily(IntEnum):
    """IP address family, derived from the textual form of an address."""

    ipv4 = 4
    ipv6 = 6


class AddressClass(IntEnum):
    """Whether an address needs an external ownership lookup."""

    public = 1
    private = 2


class Prefix(NamedTuple):
    """CIDR prefix: a network address and the number of significant bits."""

    family: AddressFamily
    address: str
    length: int


def address_family(ip: str) -> AddressFamily:
    """Derive the address family from the presence of a colon."""
    return AddressFamily.ipv6 if ":" in ip else AddressFamily.ipv4


def _ipv4_octets(ip: str) -> List[int]:
    return list(IPv4Address(ip).packed)


def _ipv6_groups(ip: str) -> List[int]:
    # exploded always yields eight groups, with any "::" elision filled with zeros
    return [int(group, 16) for group in IPv6Address(ip).exploded.split(":")]


def is_valid_address(ip: Optional[str]) -> bool:
    """Check that a value is a syntactically valid IPv4 or IPv6 literal.

    Args:
        ip: Candidate address

    Returns:
        True if the value parses as an address of its derived family
    """
    if not ip:
        return False
    try:
        if address_family(ip) == AddressFamily.ipv6:
            _ipv6_groups(ip)
        else:
            _ipv4_octets(ip)
    except ValueError:
        return False
    return True


def _classify_ipv4(ip: str) -> AddressClass:
    parts = ip.split(".")
    if len(parts) != 4 or not all(
        part.isascii() and part.isdigit() for part in parts
    ):
        return AddressClass.public
    octets = [int(part) for part in parts]
    if any(octet > 255 for octet in octets):
        return AddressClass.public

    first, second = octets[0], octets[1]
    if first == 10:
        return AddressClass.private
    if first == 172 and 16 <= second <= 31:
        return AddressClass.private
    if first == 192 and second == 168:
        return AddressClass.private
    if first == 127:
        return AddressClass.private
    return AddressClass.public


def _classify_ipv6(ip: str) -> AddressClass:
    lowered = ip.lower()
    if lowered in ("::1", "0:0:0:0:0:0:0:1", "0000:0000:0000:0000:0000:0000:0000:0001"):
        return AddressClass.private
    if lowered.startswith("fe80:"):
        return AddressClass.private
    if lowered.startswith("fc") or lowered.startswith("fd"):
        return AddressClass.private
    return AddressClass.public


def classify_address(ip: str) -> AddressClass:
    """Classify an address as private (loopback, link-local, RFC 1918, ULA) or public.

    Malformed input is classified as public so that it goes through the regular
    lookup path instead of being reported as internal. This function never raises.

    Args:
        ip: Textual IPv4 or IPv6 address

    Returns:
        AddressClass.private or AddressClass.public
    """
    try:
        if address_family(ip) == AddressFamily.ipv6:
            return _classify_ipv6(ip)
        return _classify_ipv4(ip)
    except Exception:
        logger.debug("Unable to classify address %r", ip, exc_info=True)
        return AddressClass.public


def is_private_address(ip: str) -> bool:
    return classify_address(ip) == AddressClass.private


def parse_prefix(value: str) -> Optional[Prefix]:
    """Parse a CIDR prefix such as "192.0.2.0/24" or "2001:db8::/32".

    Args:
        value: CIDR notated prefix

    Returns:
        Prefix if the address and length are valid for the family, None otherwise
    """
    address, separator, bits = value.strip().partition("/")
    if separator != "/" or not (bits.isascii() and bits.isdigit()):
        return None

    family = address_family(address)
    length = int(bits)
    max_length = 128 if family == AddressFamily.ipv6 else 32
    if length > max_length or not is_valid_address(address):
        return None
    return Prefix(family=family, address=address, length=length)


def _match_units(
    address: Sequence[int], network: Sequence[int], length: int, unit_bits: int
) -> bool:
    full_units, remaining_bits = divmod(length, unit_bits)

    for i in range(full_units):
        if address[i] != network[i]:
            return False

    if remaining_bits > 0:
        mask = (1 << unit_bits) - (1 << (unit_bits - remaining_bits))
        if (address[full_units] & mask) != (network[full_units] & mask):
            return False

    return True


def ip_in_prefix(ip: str, prefix: str) -> bool:
    """Check whether an address falls inside a CIDR prefix.

    IPv4 addresses are compared octet by octet and IPv6 addresses group by group
    after expanding any "::" elision, with the trailing partial unit compared under
    a mask of its top bits. Family mismatches and parse errors are non-matches.

    Args:
        ip: Textual IPv4 or IPv6 address
        prefix: CIDR notated prefix

    Returns:
        True if the top prefix-length bits of the address equal those of the prefix
    """
    try:
        parsed = parse_prefix(prefix)
        if parsed is None:
            logger.warning("Invalid CIDR prefix %r", prefix)
            return False

        if address_family(ip) != parsed.family:
            return False

        if parsed.family == AddressFamily.ipv6:
            return _match_units(
                _ipv6_groups(ip), _ipv6_groups(parsed.address), parsed.length, 16
            )
        return _match_units(
            _ipv4_octets(ip), _ipv4_octets(parsed.address), parsed.length, 8
        )
    except ValueError:
        logger.warning("Invalid address %r", ip)
        return False
    except Exception:
        logger.warning("Unable to match %r against %r", ip, prefix, exc_info=True)
        return False
