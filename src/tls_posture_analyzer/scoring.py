"""
Posture score, vulnerabilities and recommendations.

All three are pure functions of the same facts (certificate, public key,
security headers). The vulnerability and recommendation lists are built
from those facts directly, never from the score. Any argument may be
None; missing data earns no points and produces no certificate/key
findings.

Score allocation (max 100):
    certificate validity   30  (20 not expired, +5 >30 days, +5 >90 days)
    key strength           25  (0 / 8 / 15 / 25 by algorithm thresholds, 5 if unknown)
    signature algorithm    10  (SHA-2 family 10, anything not sha1/md5 5)
    security headers       35  (HSTS 15, CSP 10, XFO 5, XCTO 3, X-XSS 2)
"""

from __future__ import annotations


from .keys import key_standard
from .models import Certificate, PublicKeyInfo, SecurityHeaders, Vulnerability

MAX_SCORE = 100
UNKNOWN_KEY_POINTS = 5
RENEWAL_WINDOW_DAYS = 60

STRONG_SIGNATURES = ("sha256", "sha384", "sha512")
LEGACY_SIGNATURES = ("sha1", "md5")

HEADER_POINTS = (
    ("strict_transport_security", 15),
    ("content_security_policy", 10),
    ("x_frame_options", 5),
    ("x_content_type_options", 3),
    ("x_xss_protection", 2),
)


def _key_of(certificate: Certificate | None, key: PublicKeyInfo | None) -> PublicKeyInfo | None:
    if key is not None:
        return key
    return certificate.public_key if certificate is not None else None


def certificate_points(certificate: Certificate | None) -> int:
    if certificate is None or certificate.is_expired:
        return 0
    points = 20
    if certificate.days_until_expiry > 30:
        points += 5
    if certificate.days_until_expiry > 90:
        points += 5
    return points


def key_points(key: PublicKeyInfo | None) -> int:
    if key is None:
        return UNKNOWN_KEY_POINTS
    standard = key_standard(key.algorithm)
    if standard is None or key.size is None:
        return UNKNOWN_KEY_POINTS
    if key.size < standard.weak_threshold:
        return 0
    if key.size < standard.minimum_secure:
        return 8
    if key.size < standard.recommended:
        return 15
    return 25


def is_legacy_signature(signature_algorithm: str | None) -> bool:
    sig = (signature_algorithm or "").lower()
    return any(name in sig for name in LEGACY_SIGNATURES)


def signature_points(signature_algorithm: str | None) -> int:
    if not signature_algorithm:
        return 0
    sig = signature_algorithm.lower()
    if any(name in sig for name in STRONG_SIGNATURES):
        return 10
    if not is_legacy_signature(sig):
        return 5
    return 0


def header_points(headers: SecurityHeaders | None) -> int:
    if headers is None:
        return 0
    return sum(points for name, points in HEADER_POINTS if getattr(headers, name) is not None)


def score_posture(
    certificate: Certificate | None = None,
    key: PublicKeyInfo | None = None,
    headers: SecurityHeaders | None = None,
) -> int:
    """``key`` defaults to the certificate's own public key."""
    score = (
        certificate_points(certificate)
        + key_points(_key_of(certificate, key))
        + signature_points(certificate.signature_algorithm if certificate else None)
        + header_points(headers)
    )
    return min(MAX_SCORE, max(0, score))


def identify_vulnerabilities(
    certificate: Certificate | None = None,
    key: PublicKeyInfo | None = None,
    headers: SecurityHeaders | None = None,
) -> list[Vulnerability]:
    found: list[Vulnerability] = []
    key = _key_of(certificate, key)

    if certificate is not None:
        if certificate.is_expired:
            found.append(
                Vulnerability(
                    severity="critical",
                    type="Certificate Expired",
                    description="SSL certificate has expired and requires immediate renewal",
                )
            )
        elif certificate.is_expiring_soon:
            found.append(
                Vulnerability(
                    severity="warning",
                    type="Certificate Expiring Soon",
                    description=f"Certificate expires in {certificate.days_until_expiry} days",
                )
            )

    standard = key_standard(key.algorithm) if key is not None else None
    if standard is not None and key.size is not None and key.size < standard.weak_threshold:
        found.append(
            Vulnerability(
                severity="high",
                type="Weak Key Size",
                description=(
                    f"{key.algorithm} key size ({key.size} bits) is below the recommended "
                    f"minimum of {standard.weak_threshold} bits"
                ),
            )
        )

    if headers is None or headers.strict_transport_security is None:
        found.append(
            Vulnerability(
                severity="medium",
                type="Missing HSTS Header",
                description="Strict-Transport-Security header not found",
            )
        )
    if headers is None or headers.content_security_policy is None:
        found.append(
            Vulnerability(
                severity="low",
                type="Missing CSP Header",
                description="Content-Security-Policy header not found",
            )
        )
    return found


def build_recommendations(
    certificate: Certificate | None = None,
    key: PublicKeyInfo | None = None,
    headers: SecurityHeaders | None = None,
) -> list[str]:
    recs: list[str] = []
    key = _key_of(certificate, key)

    if certificate is not None and certificate.days_until_expiry < RENEWAL_WINDOW_DAYS:
        recs.append("Schedule certificate renewal within the next 30 days")

    standard = key_standard(key.algorithm) if key is not None else None
    if standard is not None and key.size is not None and key.size < standard.recommended:
        if key.algorithm == "EC":
            recs.append(f"Consider moving to a {standard.recommended}-bit or larger elliptic curve")
        else:
            recs.append(f"Consider upgrading to a {standard.recommended}-bit {key.algorithm} key or ECC")

    if certificate is not None and is_legacy_signature(certificate.signature_algorithm):
        recs.append("Reissue the certificate with a SHA-256 or stronger signature")

    if headers is None or headers.strict_transport_security is None:
        recs.append("Implement HSTS header with includeSubDomains")
    if headers is None or headers.content_security_policy is None:
        recs.append("Implement Content Security Policy")
    return recs
