import socket
from types import SimpleNamespace

import dns.exception
import dns.resolver
import pytest
import requests

from tls_posture_analyzer import signals
from tls_posture_analyzer.config import AnalyzerConfig
from tls_posture_analyzer.errors import SignalCollectionError
from tls_posture_analyzer.models import NOT_AVAILABLE, GeoLocation


class FakeResolver:
    """Serves canned rdata per record type; anything else has no answer."""

    def __init__(self, answers, failures=()):
        self.answers = answers
        self.failures = set(failures)

    def resolve(self, host, rtype):
        if rtype in self.failures:
            raise dns.exception.Timeout()
        if rtype not in self.answers:
            raise dns.resolver.NoAnswer()
        return self.answers[rtype]


def txt(value):
    return SimpleNamespace(strings=[value.encode()])


ANSWERS = {
    "A": [SimpleNamespace(address="93.184.216.34")],
    "AAAA": [SimpleNamespace(address="2606:2800:220:1::1")],
    "MX": [SimpleNamespace(preference=10, exchange="mail.example.com.")],
    "NS": [SimpleNamespace(target="kim.ns.cloudflare.com."), SimpleNamespace(target="bob.ns.cloudflare.com.")],
    "CNAME": [SimpleNamespace(target="example.com.cdn.cloudflare.net.")],
    "TXT": [txt("v=spf1 include:_spf.example.com ~all"), txt("hello world")],
    "CAA": [SimpleNamespace(flags=0, tag=b"issue", value=b"letsencrypt.org")],
}


@pytest.mark.parametrize(
    "value,expected",
    [
        ("v=spf1 -all", "[SPF] v=spf1 -all"),
        ("v=DKIM1; k=rsa; p=MIGf", "[DKIM] v=DKIM1; k=rsa; p=MIGf"),
        ("v=DMARC1; p=reject", "[DMARC] v=DMARC1; p=reject"),
        ("google-site-verification=abc", "[Google Verification] google-site-verification=abc"),
        ("MS=ms12345", "[Microsoft Verification] MS=ms12345"),
        ("some token v=spf1", "some token v=spf1"),
    ],
)
def test_annotate_txt(value, expected):
    assert signals.annotate_txt(value) == expected


def test_query_records_formats_each_type():
    resolver = FakeResolver(ANSWERS)
    assert signals.query_records(resolver, "example.com", "MX") == ["10 mail.example.com"]
    assert signals.query_records(resolver, "example.com", "CAA") == ['0 issue "letsencrypt.org"']
    assert signals.query_records(resolver, "example.com", "TXT") == [
        "[SPF] v=spf1 include:_spf.example.com ~all",
        "hello world",
    ]


def test_query_records_no_answer_is_empty():
    assert signals.query_records(FakeResolver({}), "example.com", "AAAA") == []


def test_query_records_resolver_failure_raises():
    with pytest.raises(SignalCollectionError):
        signals.query_records(FakeResolver({}, failures={"MX"}), "example.com", "MX")


def test_resolve_ipv4(monkeypatch):
    monkeypatch.setattr(signals.socket, "gethostbyname", lambda host: "93.184.216.34")
    assert signals.resolve_ipv4("example.com") == "93.184.216.34"
    assert signals.resolve_ipv4("192.0.2.1") == "192.0.2.1"
    assert signals.resolve_ipv4("2001:db8::1") is None


def test_resolve_ipv4_failure(monkeypatch):
    def fail(host):
        raise socket.gaierror(-2, "Name or service not known")

    monkeypatch.setattr(signals.socket, "gethostbyname", fail)
    with pytest.raises(SignalCollectionError):
        signals.resolve_ipv4("nope.invalid")


def test_resolve_ipv6_absent_is_none():
    assert signals.resolve_ipv6("example.com", FakeResolver({})) is None
    assert signals.resolve_ipv6("example.com", None) is None
    assert signals.resolve_ipv6("2001:db8::1", None) == "2001:db8::1"


def test_reverse_dns(monkeypatch):
    monkeypatch.setattr(signals.socket, "gethostbyaddr", lambda ip: ("Host.Example.NET", [], [ip]))
    assert signals.reverse_dns("192.0.2.1") == "host.example.net"


def test_reverse_dns_sentinels(monkeypatch):
    monkeypatch.setattr(signals.socket, "gethostbyaddr", lambda ip: (ip, [], [ip]))
    assert signals.reverse_dns("192.0.2.1") == NOT_AVAILABLE

    def no_ptr(ip):
        raise socket.herror(1, "Unknown host")

    monkeypatch.setattr(signals.socket, "gethostbyaddr", no_ptr)
    assert signals.reverse_dns("192.0.2.1") == NOT_AVAILABLE


def test_ipapi_lookup(monkeypatch):
    payload = {
        "country_name": "Netherlands",
        "region": "North Holland",
        "city": "Amsterdam",
        "org": "CLOUDFLARENET",
        "timezone": "Europe/Amsterdam",
    }
    resp = SimpleNamespace(raise_for_status=lambda: None, json=lambda: payload)
    monkeypatch.setattr(signals.requests, "get", lambda url, **kw: resp)

    location = signals.IpApiLookup().lookup("104.16.0.1")
    assert location == GeoLocation("Netherlands", "North Holland", "Amsterdam", "CLOUDFLARENET", "Europe/Amsterdam")


def test_ipapi_lookup_unavailable(monkeypatch):
    resp = SimpleNamespace(raise_for_status=lambda: None, json=lambda: {"error": True, "reason": "Reserved IP"})
    monkeypatch.setattr(signals.requests, "get", lambda url, **kw: resp)
    assert signals.IpApiLookup().lookup("10.0.0.1") is None

    def down(url, **kw):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(signals.requests, "get", down)
    with pytest.raises(SignalCollectionError):
        signals.IpApiLookup().lookup("10.0.0.1")


@pytest.fixture
def network(monkeypatch):
    monkeypatch.setattr(signals.socket, "gethostbyname", lambda host: "104.16.132.229")
    monkeypatch.setattr(
        signals.socket,
        "gethostbyaddr",
        lambda ip: ("server-104-16-132-229.cloudflare.example", [], [ip]),
    )


def test_collect_network_signals(monkeypatch, network):
    monkeypatch.setattr(signals, "make_resolver", lambda timeout: FakeResolver(ANSWERS, failures={"CAA"}))

    result = signals.collect_network_signals("example.com", {"server": "cloudflare"}, AnalyzerConfig(max_workers=4))

    assert result.ipv4 == "104.16.132.229"
    assert result.ipv6 == "2606:2800:220:1::1"
    assert result.reverse_dns == "server-104-16-132-229.cloudflare.example"
    assert result.organization == "CLOUDFLARE"
    assert result.cdn == "Cloudflare"
    assert result.location.country == "Global CDN"
    assert result.location.approximate
    assert "CAA" not in result.dns_records
    assert result.dns_records["NS"] == ["kim.ns.cloudflare.com", "bob.ns.cloudflare.com"]
    assert result.headers == {"server": "cloudflare"}


def test_geo_organization_wins_over_reverse_dns(monkeypatch, network):
    class Geo:
        def lookup(self, ip):
            return GeoLocation(country="US", org="Akamai Technologies")

    monkeypatch.setattr(signals, "make_resolver", lambda timeout: FakeResolver({}))
    result = signals.collect_network_signals("example.com", {}, AnalyzerConfig(geo_lookup=Geo()))

    assert result.organization == "Akamai Technologies"
    assert result.location.country == "US"
    assert result.cdn == "Cloudflare, Akamai"


def test_every_lookup_failing_still_returns_signals(monkeypatch):
    def fail(*args):
        raise socket.gaierror(-2, "Name or service not known")

    class BrokenGeo:
        def lookup(self, ip):
            raise RuntimeError("boom")

    monkeypatch.setattr(signals.socket, "gethostbyname", fail)
    monkeypatch.setattr(signals, "make_resolver", lambda timeout: FakeResolver({}, failures=set(signals.RECORD_TYPES)))

    result = signals.collect_network_signals("example.com", {}, AnalyzerConfig(geo_lookup=BrokenGeo()))

    assert result.ipv4 is None
    assert result.ipv6 is None
    assert result.reverse_dns is None
    assert result.dns_records == {}
    assert result.cdn is None


def test_ip_target_skips_dns_enumeration(monkeypatch):
    queried = []

    class Recording(FakeResolver):
        def resolve(self, host, rtype):
            queried.append(rtype)
            return super().resolve(host, rtype)

    monkeypatch.setattr(signals, "make_resolver", lambda timeout: Recording(ANSWERS))
    monkeypatch.setattr(signals.socket, "gethostbyaddr", lambda ip: (ip, [], [ip]))

    result = signals.collect_network_signals("192.0.2.10", {})

    assert queried == []
    assert result.ipv4 == "192.0.2.10"
    assert result.reverse_dns == NOT_AVAILABLE
    assert result.organization is None


def test_location_guessed_from_reverse_dns_when_geo_has_no_answer(monkeypatch):
    class NoAnswerGeo:
        def lookup(self, ip):
            return None

    monkeypatch.setattr(signals.socket, "gethostbyname", lambda host: "88.198.1.1")
    monkeypatch.setattr(
        signals.socket,
        "gethostbyaddr",
        lambda ip: ("static.88-198-1-1.clients.your-server.de", [], [ip]),
    )
    monkeypatch.setattr(signals, "make_resolver", lambda timeout: FakeResolver({}))

    result = signals.collect_network_signals("example.com", {}, AnalyzerConfig(geo_lookup=NoAnswerGeo()))

    assert result.organization is None
    assert result.location.country == "Germany"
    assert result.location.timezone == "Europe/Berlin"
    assert result.location.approximate
