"""
Hosting / CDN provider heuristics.

Each signal (CNAME targets, reverse DNS, organization, response
headers, NS targets) is matched on its own against the provider marker
table, so several providers can be reported for one host. Matching is a
case-insensitive substring test.

The generic fallback ("cdn", "cache", "edge" anywhere in the text) is a
known source of false positives on ordinary names; it is kept on purpose.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from .models import GeoLocation

GENERIC_LABEL = "CDN Detected"
GENERIC_MARKERS = ("cdn", "cache", "edge")

# Insertion order is match priority.
PROVIDER_MARKERS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "cloudflare": ("cloudflare", "cf-ray", "cf-cache-status"),
        "fastly": ("fastly", "fastly-cache", "x-served-by"),
        "akamai": ("akamai", "edgekey", "edgesuite", "akamaitechnologies"),
        "maxcdn": ("maxcdn", "netdna"),
        "amazon": ("cloudfront", "amazonaws"),
        "google": ("googleapis", "googleusercontent", "gstatic"),
        "microsoft": ("azureedge", "azure"),
        "keycdn": ("keycdn",),
        "bunnycdn": ("bunnycdn",),
        "stackpath": ("stackpath", "netdna-ssl"),
        "jsdelivr": ("jsdelivr",),
        "unpkg": ("unpkg",),
        "cdnjs": ("cdnjs",),
    }
)

# Headers whose mere presence identifies a provider. "server" is not
# here: its value goes through match_provider() instead.
PROVIDER_HEADERS: Mapping[str, str] = MappingProxyType(
    {
        "cf-ray": "Cloudflare",
        "cf-cache-status": "Cloudflare",
        "x-served-by": "Fastly",
        "x-cache": "Various CDN",
        "x-edge-location": "CloudFront",
        "x-amz-cf-id": "CloudFront",
    }
)

# reverse DNS substring -> organization label, used when no geo lookup answered
ORGANIZATION_PATTERNS: Mapping[str, str] = MappingProxyType(
    {
        "google": "GOOGLE",
        "amazon": "AMAZON",
        "microsoft": "MICROSOFT",
        "cloudflare": "CLOUDFLARE",
        "fastly": "FASTLY",
        "akamai": "AKAMAI",
        "digitalocean": "DIGITALOCEAN",
        "linode": "LINODE",
        "siteground": "SITEGROUND",
        "ovh": "OVH",
        "hetzner": "HETZNER",
    }
)


def match_provider(text: str | None) -> str | None:
    if not text:
        return None
    text = text.lower()
    for provider, markers in PROVIDER_MARKERS.items():
        if any(marker in text for marker in markers):
            return provider.capitalize()
    if any(marker in text for marker in GENERIC_MARKERS):
        return GENERIC_LABEL
    return None


def provider_from_headers(headers: Mapping[str, str]) -> str | None:
    for name, label in PROVIDER_HEADERS.items():
        if name in headers:
            return label
    return match_provider(headers.get("server"))


def detect_cdn(
    *,
    cnames: Iterable[str] = (),
    reverse_dns: str | None = None,
    organization: str | None = None,
    headers: Mapping[str, str] | None = None,
    nameservers: Iterable[str] = (),
) -> str | None:
    """
    Returns the matched provider labels joined with ", " in signal order,
    or None when nothing matched.
    """
    found: list[str | None] = [match_provider(c) for c in cnames]
    found.append(match_provider(reverse_dns))
    found.append(match_provider(organization))
    if headers:
        found.append(provider_from_headers(headers))
    found.extend(match_provider(ns) for ns in nameservers)

    labels = list(dict.fromkeys(label for label in found if label))
    return ", ".join(labels) if labels else None


def detect_organization(reverse_dns: str | None) -> str | None:
    if not reverse_dns:
        return None
    text = reverse_dns.lower()
    for pattern, org in ORGANIZATION_PATTERNS.items():
        if pattern in text:
            return org
    return None


# rough placement for providers whose address space is worldwide
ORGANIZATION_LOCATIONS: Mapping[str, GeoLocation] = MappingProxyType(
    {
        "GOOGLE": GeoLocation("United States", "Global", "Multiple Locations", timezone="UTC", approximate=True),
        "CLOUDFLARE": GeoLocation("Global CDN", "Worldwide", "Multiple Locations", timezone="UTC", approximate=True),
        "AMAZON": GeoLocation("United States", "AWS Global", "Multiple Locations", timezone="UTC", approximate=True),
    }
)

# reverse DNS top-level label -> country guess
COUNTRY_SUFFIXES: Mapping[str, GeoLocation] = MappingProxyType(
    {
        "de": GeoLocation("Germany", "Various", "Multiple Cities", timezone="Europe/Berlin", approximate=True),
        "uk": GeoLocation("United Kingdom", "England", "London", timezone="Europe/London", approximate=True),
        "fr": GeoLocation("France", "Île-de-France", "Paris", timezone="Europe/Paris", approximate=True),
        "nl": GeoLocation("The Netherlands", "North Holland", "Amsterdam", timezone="Europe/Amsterdam", approximate=True),
        "se": GeoLocation("Sweden", "Stockholm", "Stockholm", timezone="Europe/Stockholm", approximate=True),
        "dk": GeoLocation("Denmark", "Copenhagen", "Copenhagen", timezone="Europe/Copenhagen", approximate=True),
        "us": GeoLocation("United States", "Various", "Multiple Cities", timezone="America/New_York", approximate=True),
        "ca": GeoLocation("Canada", "Ontario", "Toronto", timezone="America/Toronto", approximate=True),
    }
)


def approximate_location(reverse_dns: str | None, organization: str | None = None) -> GeoLocation | None:
    """
    Best guess when no geolocation service answered: a fixed placement
    for a few global providers, else the country of the reverse DNS
    name's top-level domain. Results carry ``approximate=True``.
    """
    if organization in ORGANIZATION_LOCATIONS:
        return ORGANIZATION_LOCATIONS[organization]
    if not reverse_dns:
        return None
    tld = reverse_dns.lower().rstrip(".").rsplit(".", 1)[-1]
    return COUNTRY_SUFFIXES.get(tld)
