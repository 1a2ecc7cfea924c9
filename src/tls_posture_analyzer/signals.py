"""
Network signal collection: addresses, reverse DNS, DNS record sets and
optional geolocation.

Every lookup is independent and best effort. A failing lookup raises
SignalCollectionError (or returns nothing when absence is normal, e.g. no
AAAA record) and collect_network_signals() degrades that one field.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Mapping, Protocol

import dns.exception
import dns.resolver
import requests

from .cdn import approximate_location, detect_cdn, detect_organization
from .config import AnalyzerConfig
from .errors import SignalCollectionError
from .models import NOT_AVAILABLE, GeoLocation, NetworkSignals

logger = logging.getLogger(__name__)

RECORD_TYPES = ("A", "AAAA", "MX", "TXT", "NS", "CNAME", "CAA")
OPTIONAL_RECORD_TYPES = frozenset({"CAA"})

# value prefix -> tag shown in front of the TXT record
TXT_TAGS = (
    ("v=spf1", "SPF"),
    ("v=DKIM1", "DKIM"),
    ("v=DMARC1", "DMARC"),
    ("google-site-verification", "Google Verification"),
    ("facebook-domain-verification", "Facebook Verification"),
    ("MS=", "Microsoft Verification"),
)

_NO_RECORDS = (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer)


class GeoLookup(Protocol):
    def lookup(self, ip: str) -> GeoLocation | None:
        """Return None when the service has no answer for ``ip``."""
        ...


class IpApiLookup:
    """Geolocation via the public ipapi.co JSON endpoint."""

    url = "https://ipapi.co/{ip}/json/"

    def __init__(self, timeout: float = 5.0, user_agent: str | None = None) -> None:
        self.timeout = timeout
        self.user_agent = user_agent

    def lookup(self, ip: str) -> GeoLocation | None:
        headers = {"User-Agent": self.user_agent} if self.user_agent else {}
        try:
            resp = requests.get(self.url.format(ip=ip), timeout=self.timeout, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise SignalCollectionError("geolocation", str(e)) from e

        if not isinstance(data, dict) or data.get("error"):
            return None
        return GeoLocation(
            country=data.get("country_name"),
            region=data.get("region"),
            city=data.get("city"),
            org=data.get("org"),
            timezone=data.get("timezone"),
        )


def _ip_version(value: str) -> int | None:
    try:
        return ipaddress.ip_address(value).version
    except ValueError:
        return None


def make_resolver(timeout: float = 5.0) -> dns.resolver.Resolver | None:
    try:
        resolver = dns.resolver.Resolver()
    except dns.exception.DNSException as e:
        logger.warning("No usable DNS resolver configuration: %s", e)
        return None
    resolver.timeout = timeout
    resolver.lifetime = timeout * 2
    return resolver


def resolve_ipv4(host: str) -> str | None:
    if _ip_version(host) == 4:
        return host
    if _ip_version(host) == 6:
        return None
    try:
        address = socket.gethostbyname(host)
    except OSError as e:
        raise SignalCollectionError("ipv4", str(e)) from e
    if address == host or _ip_version(address) != 4:
        return None
    return address


def resolve_ipv6(host: str, resolver: dns.resolver.Resolver | None) -> str | None:
    if _ip_version(host) == 6:
        return host
    if _ip_version(host) == 4 or resolver is None:
        return None
    addresses = query_records(resolver, host, "AAAA")
    return addresses[0] if addresses else None


def reverse_dns(ip: str) -> str:
    try:
        name = socket.gethostbyaddr(ip)[0]
    except OSError:
        return NOT_AVAILABLE
    if not name or name == ip:
        return NOT_AVAILABLE
    return name.lower()


def annotate_txt(value: str) -> str:
    for prefix, tag in TXT_TAGS:
        if value.startswith(prefix):
            return f"[{tag}] {value}"
    return value


def _format_rdata(rtype: str, rdata: Any) -> str:
    if rtype in ("A", "AAAA"):
        return rdata.address
    if rtype == "MX":
        return f"{rdata.preference} {str(rdata.exchange).rstrip('.')}"
    if rtype in ("NS", "CNAME"):
        return str(rdata.target).rstrip(".")
    if rtype == "TXT":
        return annotate_txt(b"".join(rdata.strings).decode("utf-8", "replace"))
    if rtype == "CAA":
        tag = rdata.tag.decode("ascii", "replace")
        value = rdata.value.decode("utf-8", "replace")
        return f'{rdata.flags} {tag} "{value}"'
    return rdata.to_text()


def query_records(resolver: dns.resolver.Resolver, host: str, rtype: str) -> list[str]:
    """
    An empty list means the name has no records of that type. Resolver
    failures (timeouts, SERVFAIL) raise SignalCollectionError.
    """
    try:
        answers = resolver.resolve(host, rtype)
    except _NO_RECORDS:
        return []
    except dns.exception.DNSException as e:
        raise SignalCollectionError(f"dns:{rtype}", str(e) or type(e).__name__) from e
    return [_format_rdata(rtype, rdata) for rdata in answers]


def _log_degraded(signal: str, error: Exception) -> None:
    if signal in OPTIONAL_RECORD_TYPES:
        logger.debug("Optional lookup %s unavailable: %s", signal, error)
    else:
        logger.info("Signal %s unavailable: %s", signal, error)


def _result(future: Future | None, signal: str) -> Any:
    if future is None:
        return None
    try:
        return future.result()
    except SignalCollectionError as e:
        _log_degraded(signal, e)
    except Exception:
        logger.exception("Unexpected failure collecting %s", signal)
    return None


def collect_network_signals(
    host: str,
    headers: Mapping[str, str],
    config: AnalyzerConfig | None = None,
) -> NetworkSignals:
    """
    Run every lookup concurrently and join before CDN detection.
    ``headers`` is the already fetched, lower-cased response header map.
    """
    config = config or AnalyzerConfig()
    resolver = make_resolver(config.dns_timeout)
    enumerate_dns = resolver is not None and _ip_version(host) is None

    with ThreadPoolExecutor(max_workers=max(config.max_workers, 1)) as pool:
        ipv4_future = pool.submit(resolve_ipv4, host)
        ipv6_future = pool.submit(resolve_ipv6, host, resolver)
        record_futures = {
            rtype: pool.submit(query_records, resolver, host, rtype)
            for rtype in (RECORD_TYPES if enumerate_dns else ())
        }

        ipv4 = _result(ipv4_future, "ipv4")
        rdns_future = pool.submit(reverse_dns, ipv4) if ipv4 else None
        geo_future = (
            pool.submit(config.geo_lookup.lookup, ipv4)
            if ipv4 and config.geo_lookup is not None
            else None
        )

        ipv6 = _result(ipv6_future, "ipv6")
        records: dict[str, list[str]] = {}
        for rtype, future in record_futures.items():
            values = _result(future, rtype)
            if values:
                records[rtype] = values
        rdns = _result(rdns_future, "reverse_dns")
        location: GeoLocation | None = _result(geo_future, "geolocation")

    usable_rdns = rdns if rdns and rdns != NOT_AVAILABLE else None
    if location is not None and location.org:
        organization = location.org
    else:
        organization = detect_organization(usable_rdns)
    if location is None:
        location = approximate_location(usable_rdns, organization)

    cdn = detect_cdn(
        cnames=records.get("CNAME", []),
        reverse_dns=usable_rdns,
        organization=organization,
        headers=headers,
        nameservers=records.get("NS", []),
    )

    return NetworkSignals(
        ipv4=ipv4,
        ipv6=ipv6,
        reverse_dns=rdns,
        organization=organization,
        cdn=cdn,
        location=location,
        dns_records=records,
        headers=dict(headers),
    )
