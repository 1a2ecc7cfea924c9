from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from .certs import parse_certificate, parse_chain
from .config import AnalyzerConfig
from .errors import FatalAnalysisError, SignalCollectionError
from .fetch import fetch_presented_chain
from .headers import extract_security_headers, failed_security_headers, fetch_raw_headers, parse_headers
from .models import AnalysisResult, SecurityHeaders, Target, TLSSession
from .scoring import build_recommendations, identify_vulnerabilities, score_posture
from .signals import collect_network_signals
from .utils import local_timestamp

logger = logging.getLogger(__name__)


def _collect_headers(host: str, config: AnalyzerConfig) -> tuple[SecurityHeaders, dict[str, str]]:
    try:
        fetched = fetch_raw_headers(
            host,
            timeout=config.header_timeout,
            verify=config.verify_http_tls,
            user_agent=config.user_agent,
        )
    except SignalCollectionError as e:
        logger.info("Security headers unavailable for %s: %s", host, e.reason)
        return failed_security_headers(e.reason), {}
    header_map = parse_headers(fetched.raw)
    return extract_security_headers(fetched.status, header_map), header_map


def analyze(
    host: str,
    port: int = 443,
    config: AnalyzerConfig | None = None,
    *,
    now: datetime | None = None,
) -> AnalysisResult:
    """
    Run one full analysis of host:port.

    Raises FatalAnalysisError (TLSConnectionError, CertificateUnavailable,
    CertificateParseError) when the leaf certificate cannot be obtained.
    Every other failure only blanks the affected field.
    """
    config = config or AnalyzerConfig()
    timestamp = local_timestamp(now)

    presented = fetch_presented_chain(
        host=host,
        port=port,
        timeout_seconds=config.timeout,
        sni=config.sni,
    )
    certificate = parse_certificate(presented.leaf_der, now)
    chain = parse_chain(presented.chain_ders, now)

    security_headers, header_map = _collect_headers(host, config)

    network = None
    if config.collect_network_signals:
        network = collect_network_signals(host, header_map, config)

    key = certificate.public_key
    result = AnalysisResult(
        target=Target(host=host, port=port),
        timestamp=timestamp,
        certificate=certificate,
        certificate_chain=chain,
        security_headers=security_headers,
        security_score=score_posture(certificate, key, security_headers),
        vulnerabilities=identify_vulnerabilities(certificate, key, security_headers),
        recommendations=build_recommendations(certificate, key, security_headers),
        network=network,
        tls=TLSSession(version=presented.tls_version, cipher=presented.cipher),
    )
    logger.info("%s:%s scored %d", host, port, result.security_score)
    return result


def error_payload(host: str, port: int, message: str, now: datetime | None = None) -> dict[str, Any]:
    return {
        "error": message,
        "target": {"host": host, "port": port},
        "timestamp": local_timestamp(now),
    }


def run_analysis(
    host: str,
    port: int = 443,
    config: AnalyzerConfig | None = None,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Caller-facing wrapper: the full result dict, or the error shape
    ``{"error", "target", "timestamp"}``. Never a partial result.
    """
    try:
        return analyze(host, port, config, now=now).to_dict()
    except FatalAnalysisError as e:
        logger.error("Analysis of %s:%s failed: %s", host, port, e)
        return error_payload(host, port, str(e), now)
