"""
Public key strength tables.

classify_key() maps (algorithm, bits) onto a security level label.
rsa_equivalent() gives the comparable RSA modulus size for an EC key;
it is informational and the scorer never uses it.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping, NamedTuple

UNKNOWN = "Unknown"


class KeyStandard(NamedTuple):
    weak_threshold: int
    minimum_secure: int
    recommended: int


KEY_STANDARDS: Mapping[str, KeyStandard] = MappingProxyType(
    {
        "RSA": KeyStandard(weak_threshold=2048, minimum_secure=2048, recommended=4096),
        "EC": KeyStandard(weak_threshold=256, minimum_secure=256, recommended=384),
        "DSA": KeyStandard(weak_threshold=2048, minimum_secure=2048, recommended=3072),
    }
)

# curve size -> RSA modulus of comparable strength
EC_RSA_EQUIVALENTS: Mapping[int, int] = MappingProxyType(
    {
        160: 1024,
        224: 2048,
        256: 3072,
        384: 7680,
        521: 15360,
    }
)


def _bits(size: Any) -> int | None:
    if isinstance(size, bool):
        return None
    if isinstance(size, int):
        return size
    if isinstance(size, float) and size.is_integer():
        return int(size)
    if isinstance(size, str) and size.strip().isdigit():
        return int(size.strip())
    return None


def _rsa_level(bits: int) -> str:
    if bits < 1024:
        return "Critically Weak"
    if bits < 2048:
        return "Weak (Legacy)"
    if bits < 3072:
        return "Adequate"
    if bits < 4096:
        return "Good"
    return "Excellent"


def _ec_level(bits: int) -> str:
    if bits < 224:
        return "Weak"
    if bits < 256:
        return "Legacy"
    if bits < 384:
        return "Good"
    if bits >= 521:
        return "Excellent"
    return "Very Good"


def _dsa_level(bits: int) -> str:
    if bits < 1024:
        return "Critically Weak"
    if bits < 2048:
        return "Weak (Legacy)"
    if bits < 3072:
        return "Adequate"
    return "Good"


_EVALUATORS = MappingProxyType({"RSA": _rsa_level, "EC": _ec_level, "DSA": _dsa_level})


def classify_key(algorithm: str | None, size: Any) -> str:
    """Never raises: anything unrecognized is ``Unknown``."""
    bits = _bits(size)
    evaluate = _EVALUATORS.get(algorithm or "")
    if bits is None or evaluate is None:
        return UNKNOWN
    return evaluate(bits)


def rsa_equivalent(ec_bits: Any) -> int | None:
    bits = _bits(ec_bits)
    if bits is None:
        return None
    # min() keeps the first entry on ties, i.e. the smaller curve
    closest = min(EC_RSA_EQUIVALENTS, key=lambda curve: abs(bits - curve))
    return EC_RSA_EQUIVALENTS[closest]


def key_standard(algorithm: str | None) -> KeyStandard | None:
    return KEY_STANDARDS.get(algorithm or "")
