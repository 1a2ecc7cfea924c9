from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Literal

from .keys import classify_key, rsa_equivalent


KeyAlgorithm = Literal["RSA", "EC", "DSA", "Unknown"]
Severity = Literal["critical", "high", "medium", "warning", "low"]

NOT_AVAILABLE = "Not available"
EXPIRING_SOON_DAYS = 30


def _init_kwargs(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    # drop derived keys (is_expired, security_level, ...) written by to_dict()
    names = {f.name for f in fields(cls) if f.init}
    return {k: v for k, v in data.items() if k in names}


@dataclass(frozen=True)
class Target:
    host: str
    port: int = 443


@dataclass(frozen=True)
class PublicKeyInfo:
    """
    Public key facts. security_level and rsa_equivalent are always
    derived from (algorithm, size) and cannot be passed in.
    """
    algorithm: KeyAlgorithm = "Unknown"
    size: int | None = None
    type_detail: str = "Unknown"
    security_level: str = field(init=False)
    rsa_equivalent: int | None = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "security_level", classify_key(self.algorithm, self.size))
        object.__setattr__(
            self,
            "rsa_equivalent",
            rsa_equivalent(self.size) if self.algorithm == "EC" else None,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PublicKeyInfo":
        return cls(**_init_kwargs(cls, data))


@dataclass(frozen=True)
class Certificate:
    """
    Parsed leaf certificate. Dates are local-time strings; the day count
    is computed once at parse time and never re-derived.
    """
    subject: dict[str, str]
    issuer: dict[str, str]
    serial_number: str
    valid_from: str
    valid_to: str
    days_until_expiry: int
    signature_algorithm: str | None
    public_key: PublicKeyInfo = field(default_factory=PublicKeyInfo)
    san: list[str] = field(default_factory=list)
    fingerprints: dict[str, str] = field(default_factory=dict)

    @property
    def is_expired(self) -> bool:
        return self.days_until_expiry < 0

    @property
    def is_expiring_soon(self) -> bool:
        return self.days_until_expiry < EXPIRING_SOON_DAYS

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["is_expired"] = self.is_expired
        out["is_expiring_soon"] = self.is_expiring_soon
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Certificate":
        kwargs = _init_kwargs(cls, data)
        kwargs["public_key"] = PublicKeyInfo.from_dict(data.get("public_key") or {})
        return cls(**kwargs)


@dataclass(frozen=True)
class ChainEntry:
    """
    A certificate from the presented chain (intermediates, maybe a root).
    """
    subject: dict[str, str]
    issuer: dict[str, str]
    serial_number: str
    valid_from: str
    valid_to: str
    days_until_expiry: int
    signature_algorithm: str | None
    public_key: PublicKeyInfo = field(default_factory=PublicKeyInfo)
    san: list[str] = field(default_factory=list)
    is_ca: bool = False

    @property
    def is_expired(self) -> bool:
        return self.days_until_expiry < 0

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["is_expired"] = self.is_expired
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChainEntry":
        kwargs = _init_kwargs(cls, data)
        kwargs["public_key"] = PublicKeyInfo.from_dict(data.get("public_key") or {})
        return cls(**kwargs)


@dataclass(frozen=True)
class SecurityHeaders:
    """
    None means the header was not sent; an empty string means it was
    sent with an empty value.
    """
    http_code: int | None = None
    strict_transport_security: str | None = None
    content_security_policy: str | None = None
    x_frame_options: str | None = None
    x_content_type_options: str | None = None
    x_xss_protection: str | None = None
    referrer_policy: str | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SecurityHeaders":
        return cls(**_init_kwargs(cls, data))


@dataclass(frozen=True)
class GeoLocation:
    country: str | None = None
    region: str | None = None
    city: str | None = None
    org: str | None = None
    timezone: str | None = None
    approximate: bool = False  # guessed from reverse DNS, no lookup service

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GeoLocation":
        return cls(**_init_kwargs(cls, data))


@dataclass(frozen=True)
class NetworkSignals:
    ipv4: str | None = None
    ipv6: str | None = None
    reverse_dns: str | None = None
    organization: str | None = None
    cdn: str | None = None  # None: no CDN detected
    location: GeoLocation | None = None
    dns_records: dict[str, list[str]] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NetworkSignals":
        kwargs = _init_kwargs(cls, data)
        if kwargs.get("location") is not None:
            kwargs["location"] = GeoLocation.from_dict(kwargs["location"])
        return cls(**kwargs)


@dataclass(frozen=True)
class TLSSession:
    version: str | None = None
    cipher: str | None = None


@dataclass(frozen=True)
class Vulnerability:
    severity: Severity
    type: str
    description: str


@dataclass(frozen=True)
class AnalysisResult:
    """
    Aggregate of one analysis run. to_dict() is the external contract;
    from_dict() re-parses it without recomputing anything.
    """
    target: Target
    timestamp: str
    certificate: Certificate
    certificate_chain: list[ChainEntry]
    security_headers: SecurityHeaders
    security_score: int
    vulnerabilities: list[Vulnerability] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    network: NetworkSignals | None = None
    tls: TLSSession = field(default_factory=TLSSession)

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": asdict(self.target),
            "timestamp": self.timestamp,
            "certificate": self.certificate.to_dict(),
            "certificate_chain": [entry.to_dict() for entry in self.certificate_chain],
            "security_headers": asdict(self.security_headers),
            "network": asdict(self.network) if self.network is not None else None,
            "tls": asdict(self.tls),
            "security_score": self.security_score,
            "vulnerabilities": [asdict(v) for v in self.vulnerabilities],
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisResult":
        network = data.get("network")
        return cls(
            target=Target(**data["target"]),
            timestamp=data["timestamp"],
            certificate=Certificate.from_dict(data["certificate"]),
            certificate_chain=[ChainEntry.from_dict(e) for e in data.get("certificate_chain", [])],
            security_headers=SecurityHeaders.from_dict(data.get("security_headers") or {}),
            security_score=int(data["security_score"]),
            vulnerabilities=[Vulnerability(**v) for v in data.get("vulnerabilities", [])],
            recommendations=list(data.get("recommendations", [])),
            network=NetworkSignals.from_dict(network) if network is not None else None,
            tls=TLSSession(**(data.get("tls") or {})),
        )
