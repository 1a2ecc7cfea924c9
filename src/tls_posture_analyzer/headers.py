"""
HTTP response header collection.

The headers are fetched once per analysis with a HEAD request and feed
both the security header checks and CDN detection. Certificate
verification is off by default so misconfigured hosts can still be
inspected; AnalyzerConfig.verify_http_tls turns it back on.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import NamedTuple

import requests
import urllib3

from .errors import SignalCollectionError
from .models import SecurityHeaders

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "tls-posture-analyzer/0.1"

# SecurityHeaders field -> lower-cased header name
SECURITY_HEADER_FIELDS = (
    ("strict_transport_security", "strict-transport-security"),
    ("content_security_policy", "content-security-policy"),
    ("x_frame_options", "x-frame-options"),
    ("x_content_type_options", "x-content-type-options"),
    ("x_xss_protection", "x-xss-protection"),
    ("referrer_policy", "referrer-policy"),
)


def _url_host(host: str) -> str:
    try:
        version = ipaddress.ip_address(host).version
    except ValueError:
        return host
    return f"[{host}]" if version == 6 else host


class RawHeaders(NamedTuple):
    status: int
    raw: str


def parse_headers(raw: str) -> dict[str, str]:
    """
    Split a raw header block on CRLF, then each line on its first colon.
    Names are lower-cased; a repeated header keeps its last value.
    The status line has no colon-separated name and is skipped.
    """
    headers: dict[str, str] = {}
    for line in raw.split("\r\n"):
        if ":" not in line:
            continue
        name, value = line.split(":", 1)
        name = name.strip().lower()
        if not name or " " in name:
            continue
        headers[name] = value.strip()
    return headers


def fetch_raw_headers(
    host: str,
    *,
    timeout: float = 5.0,
    verify: bool = False,
    user_agent: str = DEFAULT_USER_AGENT,
) -> RawHeaders:
    """
    One HEAD request to https://{host} (IPv6 literals bracketed), redirects
    not followed.
    Raises SignalCollectionError on any transport failure.
    """
    url = f"https://{_url_host(host)}"
    if not verify:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    try:
        resp = requests.head(
            url,
            timeout=timeout,
            verify=verify,
            allow_redirects=False,
            headers={"User-Agent": user_agent},
        )
    except requests.RequestException as e:
        raise SignalCollectionError("http_headers", str(e) or type(e).__name__) from e
    logger.debug("HEAD %s -> %s (%d headers)", url, resp.status_code, len(resp.headers))

    lines = [f"HTTP/1.1 {resp.status_code} {resp.reason or ''}".rstrip()]
    lines.extend(f"{name}: {value}" for name, value in resp.headers.items())
    return RawHeaders(status=resp.status_code, raw="\r\n".join(lines) + "\r\n\r\n")


def extract_security_headers(status: int | None, headers: dict[str, str]) -> SecurityHeaders:
    values = {field_name: headers.get(header) for field_name, header in SECURITY_HEADER_FIELDS}
    return SecurityHeaders(http_code=status, **values)


def failed_security_headers(reason: str) -> SecurityHeaders:
    return SecurityHeaders(error=reason)
