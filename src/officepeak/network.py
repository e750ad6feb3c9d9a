"""IPv4 CIDR matching for office network ranges."""

from __future__ import annotations

from collections.abc import Iterable

_FULL_MASK = 0xFFFFFFFF


def ip_to_int(ip: str) -> int:
    """Convert a dotted-quad IPv4 address to an unsigned 32-bit integer.

    Args:
        ip: Address such as ``"192.168.1.20"``.

    Returns:
        The address as an integer in ``[0, 2**32)``.

    Raises:
        ValueError: If *ip* is not four decimal octets in the range 0-255.
    """
    parts = ip.strip().split(".")
    if len(parts) != 4:
        msg = f"Invalid IPv4 address: {ip!r}"
        raise ValueError(msg)
    result = 0
    for part in parts:
        if not part.isdigit() or int(part) > 255:
            msg = f"Invalid IPv4 address: {ip!r}"
            raise ValueError(msg)
        result = (result << 8) | int(part)
    return result


def _prefix_bits(bits: str) -> int:
    bits = bits.strip()
    if not bits:
        return 0
    if not bits.isdigit():
        msg = f"Invalid prefix length: {bits!r}"
        raise ValueError(msg)
    return int(bits)


def _prefix_mask(bits: int) -> int:
    if not 0 <= bits <= 32:
        msg = f"Invalid prefix length: {bits}"
        raise ValueError(msg)
    if bits == 0:
        return 0
    return (_FULL_MASK << (32 - bits)) & _FULL_MASK


def check_cidr(cidr: str) -> str:
    """Return *cidr* unchanged if both its address and prefix length are valid.

    Raises:
        ValueError: If the address or the prefix length is malformed.
    """
    network, _, bits = cidr.partition("/")
    ip_to_int(network)
    _prefix_mask(_prefix_bits(bits))
    return cidr


def ip_in_cidr(ip: str, cidr: str) -> bool:
    """Check whether *ip* falls inside *cidr*.

    A range without a prefix length (``"10.0.0.0"``) has prefix 0 and
    matches every address. Use :func:`normalize_cidrs` to turn bare
    addresses into ``/32`` host ranges first.

    Args:
        ip: Dotted-quad address.
        cidr: Range in ``address/prefix`` notation.

    Returns:
        True if the top *prefix* bits of *ip* and the network are equal.

    Raises:
        ValueError: If either address or the prefix length is malformed.
    """
    network, _, bits = cidr.partition("/")
    mask = _prefix_mask(_prefix_bits(bits))
    return (ip_to_int(ip) & mask) == (ip_to_int(network) & mask)


def normalize_cidrs(raw: str) -> list[str]:
    """Split a comma-separated range string into ``address/prefix`` entries.

    Whitespace is trimmed, empty entries are dropped, and bare addresses
    become ``/32`` so that single hosts match exactly. Every entry is
    validated, so one malformed range rejects the whole list.

    Example:
        >>> normalize_cidrs("10.0.0.5, 10.0.1.0/24")
        ['10.0.0.5/32', '10.0.1.0/24']

    Raises:
        ValueError: If any entry is not a valid range.
    """
    entries = [item.strip() for item in raw.split(",")]
    return [check_cidr(entry if "/" in entry else f"{entry}/32") for entry in entries if entry]


def ip_in_any(ip: str, cidrs: Iterable[str]) -> bool:
    """Return True if *ip* is inside at least one of *cidrs*.

    An empty range list matches nothing.
    """
    return any(ip_in_cidr(ip, cidr) for cidr in cidrs)
