from __future__ import annotations

import ipaddress
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _name(cn: str, org: str | None = None) -> x509.Name:
    attrs = [x509.NameAttribute(NameOID.COMMON_NAME, cn)]
    if org:
        attrs.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, org))
    return x509.Name(attrs)


def build_cert(
    key,
    *,
    cn: str = "example.com",
    issuer_cn: str = "Test Issuing CA",
    days_left: float = 200,
    sans: tuple[str, ...] = ("example.com", "www.example.com"),
    ip_sans: tuple[str, ...] = (),
    ca: bool | None = None,
    path_length: int | None = None,
    signing_key=None,
    now: datetime = NOW,
) -> bytes:
    """Return the DER encoding of a freshly built certificate."""
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(cn, "Example Org"))
        .issuer_name(_name(issuer_cn, "Test CA Org"))
        .public_key(key.public_key())
        .serial_number(0x1A2B3C)
        .not_valid_before(now - timedelta(days=30))
        .not_valid_after(now + timedelta(days=days_left))
    )
    names = [x509.DNSName(s) for s in sans] + [x509.IPAddress(ipaddress.ip_address(i)) for i in ip_sans]
    if names:
        builder = builder.add_extension(x509.SubjectAlternativeName(names), critical=False)
    if ca is not None:
        builder = builder.add_extension(
            x509.BasicConstraints(ca=ca, path_length=path_length if ca else None),
            critical=True,
        )
    cert = builder.sign(signing_key or key, hashes.SHA256())
    return cert.public_bytes(serialization.Encoding.DER)


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def ec_key():
    return ec.generate_private_key(ec.SECP384R1())


@pytest.fixture(scope="session")
def leaf_der(rsa_key):
    return build_cert(rsa_key)


@pytest.fixture(scope="session")
def intermediate_der(ec_key):
    return build_cert(ec_key, cn="Test Issuing CA", issuer_cn="Test Root", sans=(), ca=True, path_length=0)


@pytest.fixture
def now():
    return NOW
