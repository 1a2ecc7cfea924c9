from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .headers import DEFAULT_USER_AGENT

if TYPE_CHECKING:
    from .signals import GeoLookup


@dataclass(frozen=True)
class AnalyzerConfig:
    timeout: float = 10.0  # TLS handshake
    sni: str | None = None  # defaults to the target host
    header_timeout: float = 5.0
    dns_timeout: float = 5.0
    collect_network_signals: bool = True
    # HEAD request only; the TLS handshake itself never verifies
    verify_http_tls: bool = False
    geo_lookup: GeoLookup | None = None
    max_workers: int = 8
    user_agent: str = DEFAULT_USER_AGENT
