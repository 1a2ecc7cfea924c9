from __future__ import annotations

import ipaddress
import logging
import select
import socket
import time
from dataclasses import dataclass, field

from cryptography.hazmat.primitives import serialization
from OpenSSL import SSL

from .errors import CertificateUnavailable, TLSConnectionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresentedChain:
    """
    Raw DER blobs as the server sent them. chain_ders never repeats the leaf.
    """
    leaf_der: bytes
    chain_ders: list[bytes] = field(default_factory=list)
    tls_version: str | None = None
    cipher: str | None = None


def _unverified_context() -> SSL.Context:
    # broken and self-signed setups must still be inspectable
    ctx = SSL.Context(SSL.TLS_CLIENT_METHOD)
    ctx.set_verify(SSL.VERIFY_NONE)
    return ctx


def _to_der(cert) -> bytes:
    return cert.to_cryptography().public_bytes(serialization.Encoding.DER)


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _handshake(conn: SSL.Connection, sock: socket.socket, timeout_seconds: float) -> None:
    # sockets with a timeout are non-blocking underneath, so OpenSSL
    # reports WantRead/WantWrite until the peer answers
    deadline = time.monotonic() + timeout_seconds
    while True:
        try:
            conn.do_handshake()
            return
        except SSL.WantReadError:
            readable, writable = [sock], []
        except SSL.WantWriteError:
            readable, writable = [], [sock]
        remaining = deadline - time.monotonic()
        if remaining <= 0 or not any(select.select(readable, writable, [], remaining)):
            raise socket.timeout("handshake timed out")


def fetch_presented_chain(
    *,
    host: str,
    port: int,
    timeout_seconds: float,
    sni: str | None = None,
) -> PresentedChain:
    """
    Fetch the server-presented certificate and chain without validating
    trust or hostname. One attempt, no retries.

    Raises TLSConnectionError when the connection or handshake fails and
    CertificateUnavailable when the peer exposes no certificate.
    """
    ctx = _unverified_context()
    server_name = sni or host

    try:
        with socket.create_connection((host, port), timeout=timeout_seconds) as sock:
            conn = SSL.Connection(ctx, sock)
            if not _is_ip(server_name):
                conn.set_tlsext_host_name(server_name.encode("idna"))
            conn.set_connect_state()
            _handshake(conn, sock, timeout_seconds)

            tls_version = conn.get_protocol_version_name()
            cipher = conn.get_cipher_name()
            leaf = conn.get_peer_certificate()
            leaf_der = _to_der(leaf) if leaf is not None else None
            chain_ders = [_to_der(c) for c in (conn.get_peer_cert_chain() or [])]
    except socket.timeout as e:
        raise TLSConnectionError(host, port, f"timed out after {timeout_seconds}s") from e
    except (OSError, SSL.Error, UnicodeError) as e:
        raise TLSConnectionError(host, port, str(e) or type(e).__name__) from e

    if not leaf_der:
        raise CertificateUnavailable(host, port)

    logger.debug(
        "%s:%s presented %d certificate(s) over %s",
        host,
        port,
        len(chain_ders),
        tls_version,
    )
    return PresentedChain(
        leaf_der=leaf_der,
        chain_ders=[d for d in chain_ders if d and d != leaf_der],
        tls_version=tls_version,
        cipher=cipher,
    )
