from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa

from .errors import CertificateParseError, ChainEntryParseError
from .models import Certificate, ChainEntry, PublicKeyInfo
from .utils import days_until, dt_to_local_iso, sha1_hex, sha256_hex

logger = logging.getLogger(__name__)

CA_MARKER = "CA:TRUE"


def _name_to_map(name: x509.Name) -> dict[str, str]:
    out: dict[str, str] = {}
    for attr in name:
        key = attr.rfc4514_attribute_name
        value = attr.value if isinstance(attr.value, str) else attr.value.hex()
        out[key] = f"{out[key]}, {value}" if key in out else value
    return out


def _get_sans(cert: x509.Certificate) -> list[str]:
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    out: list[str] = []
    for general_name in ext.value:
        if isinstance(general_name, x509.DNSName):
            out.append(f"DNS:{general_name.value}")
        elif isinstance(general_name, x509.IPAddress):
            out.append(f"IP Address:{general_name.value}")
        elif isinstance(general_name, x509.RFC822Name):
            out.append(f"email:{general_name.value}")
        elif isinstance(general_name, x509.UniformResourceIdentifier):
            out.append(f"URI:{general_name.value}")
    return out


def basic_constraints_text(cert: x509.Certificate) -> str | None:
    """basicConstraints in OpenSSL's text form, e.g. ``CA:TRUE, pathlen:0``."""
    try:
        bc = cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return None
    text = "CA:TRUE" if bc.ca else "CA:FALSE"
    if bc.path_length is not None:
        text += f", pathlen:{bc.path_length}"
    return text


def _is_ca(cert: x509.Certificate) -> bool:
    text = basic_constraints_text(cert)
    return text is not None and CA_MARKER in text


def _sig_alg(cert: x509.Certificate) -> str | None:
    try:
        oid = cert.signature_algorithm_oid
    except ValueError:
        return None
    return oid._name if oid._name != "Unknown OID" else oid.dotted_string


def describe_public_key(key: Any) -> PublicKeyInfo:
    if isinstance(key, rsa.RSAPublicKey):
        return PublicKeyInfo(algorithm="RSA", size=key.key_size, type_detail="RSA")
    if isinstance(key, ec.EllipticCurvePublicKey):
        return PublicKeyInfo(
            algorithm="EC",
            size=key.curve.key_size,
            type_detail=f"ECC ({key.curve.name})",
        )
    if isinstance(key, dsa.DSAPublicKey):
        return PublicKeyInfo(algorithm="DSA", size=key.key_size, type_detail="DSA")
    if isinstance(key, ed25519.Ed25519PublicKey):
        return PublicKeyInfo(type_detail="Ed25519")
    if isinstance(key, ed448.Ed448PublicKey):
        return PublicKeyInfo(type_detail="Ed448")
    return PublicKeyInfo()


def _public_key(cert: x509.Certificate) -> PublicKeyInfo:
    try:
        return describe_public_key(cert.public_key())
    except (ValueError, TypeError) as e:
        # unsupported key types still leave the rest of the cert usable
        logger.debug("Public key not decodable: %s", e)
        return PublicKeyInfo()


def load_certificate(der: bytes) -> x509.Certificate:
    try:
        return x509.load_der_x509_certificate(der)
    except (ValueError, TypeError) as e:
        raise CertificateParseError(f"Could not parse certificate: {e}") from e


def _common_fields(cert: x509.Certificate, now: datetime | None) -> dict[str, Any]:
    try:
        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc
        return {
            "subject": _name_to_map(cert.subject),
            "issuer": _name_to_map(cert.issuer),
            "serial_number": format(cert.serial_number, "X"),
            "valid_from": dt_to_local_iso(not_before),
            "valid_to": dt_to_local_iso(not_after),
            "days_until_expiry": days_until(not_after, now),
            "signature_algorithm": _sig_alg(cert),
            "public_key": _public_key(cert),
            "san": _get_sans(cert),
        }
    except (ValueError, x509.DuplicateExtension, x509.UnsupportedGeneralNameType) as e:
        raise CertificateParseError(f"Could not parse certificate: {e}") from e


def parse_certificate(der: bytes, now: datetime | None = None) -> Certificate:
    """Decode the leaf. Raises CertificateParseError on malformed data."""
    cert = load_certificate(der)
    return Certificate(
        **_common_fields(cert, now),
        fingerprints={"sha1": sha1_hex(der), "sha256": sha256_hex(der)},
    )


def parse_chain_entry(der: bytes, now: datetime | None = None, *, index: int = 0) -> ChainEntry:
    try:
        cert = load_certificate(der)
        common = _common_fields(cert, now)
    except CertificateParseError as e:
        raise ChainEntryParseError(index, str(e)) from e
    return ChainEntry(**common, is_ca=_is_ca(cert))


def parse_chain(ders: list[bytes], now: datetime | None = None) -> list[ChainEntry]:
    """
    Decode every presented chain certificate. Entries that fail to
    decode are dropped, so the result may be shorter than the input.
    """
    entries: list[ChainEntry] = []
    for index, der in enumerate(ders):
        try:
            entries.append(parse_chain_entry(der, now, index=index))
        except ChainEntryParseError as e:
            logger.warning("Dropping %s", e)
    return entries
