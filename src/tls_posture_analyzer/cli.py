from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .analyzer import run_analysis
from .config import AnalyzerConfig
from .signals import IpApiLookup
from .utils import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_ANALYSIS_FAILED = 3


def _write_output(out_path: str | None, payload: Any) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if out_path:
        Path(out_path).write_text(text + "\n", encoding="utf-8")
    else:
        print(text)


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="tls-posture-analyzer",
        description="Score the TLS certificate and HTTP security posture of a host.",
    )
    p.add_argument(
        "target",
        nargs="?",
        help="Domain or IP, optionally host:port or a https:// URL (e.g., example.com:443)",
    )
    p.add_argument("--port", "-p", type=int, help="Port (default: from target, else 443)")
    p.add_argument("--sni", help="SNI server name (default: the target host)")
    p.add_argument("--timeout", type=float, default=10.0, help="TLS connect timeout seconds (default: 10)")
    p.add_argument(
        "--header-timeout",
        type=float,
        default=5.0,
        help="HTTP header fetch timeout seconds (default: 5)",
    )
    p.add_argument(
        "--no-network",
        action="store_true",
        help="Skip DNS, reverse DNS and CDN detection (certificate and headers only)",
    )
    p.add_argument(
        "--verify-http-tls",
        action="store_true",
        help="Verify the certificate when fetching HTTP headers (default: not verified)",
    )
    p.add_argument(
        "--geo",
        action="store_true",
        help="Look up IP location and organization via ipapi.co",
    )
    p.add_argument("--out", "-o", help="Write JSON output to file (default: stdout)")
    p.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="warning",
        help="Log level (default: warning)",
    )
    p.add_argument("--version", action="store_true", help="Print version and exit")
    return p.parse_args(argv)


def _parse_target(target: str, port: int | None = None) -> tuple[str, int]:
    t = target.strip()
    if "://" in t:
        t = t.split("://", 1)[1]
    t = t.split("/", 1)[0]
    if not t:
        raise ValueError("host is empty")

    port_s: str | None = None
    if t.startswith("["):
        host, sep, rest = t[1:].partition("]")
        if not sep:
            raise ValueError("unterminated IPv6 literal")
        if rest.startswith(":"):
            port_s = rest[1:]
    elif t.count(":") == 1:
        host, port_s = t.split(":", 1)
    else:
        # bare host or unbracketed IPv6 literal
        host = t
    host = host.strip()
    if not host:
        raise ValueError("host is empty")

    if port is None and port_s is not None:
        port_s = port_s.strip()
        if not port_s.isdigit():
            raise ValueError("port must be a number")
        port = int(port_s)
    if port is None:
        port = 443
    if not (1 <= port <= 65535):
        raise ValueError("port out of range")
    return host, port


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    if args.version:
        print(__version__)
        return EXIT_OK

    configure_logging(args.log_level)

    if not args.target:
        print("Error: a target is required", file=sys.stderr)
        return EXIT_USAGE

    try:
        host, port = _parse_target(args.target, args.port)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    config = AnalyzerConfig(
        timeout=args.timeout,
        sni=args.sni,
        header_timeout=args.header_timeout,
        collect_network_signals=not args.no_network,
        verify_http_tls=args.verify_http_tls,
        geo_lookup=IpApiLookup(timeout=args.header_timeout) if args.geo else None,
    )
    logger.debug("Analyzing %s:%s", host, port)
    payload = run_analysis(host, port, config)

    _write_output(args.out, payload)
    return EXIT_ANALYSIS_FAILED if "error" in payload else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
