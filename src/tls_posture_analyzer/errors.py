from __future__ import annotations


class AnalyzerError(Exception):
    """Base class for everything the analyzer raises on purpose."""


class FatalAnalysisError(AnalyzerError):
    """
    The leaf certificate could not be obtained or decoded.
    Scoring has nothing to work with, so the whole analysis stops.
    """


class TLSConnectionError(FatalAnalysisError, ConnectionError):
    def __init__(self, host: str, port: int, reason: str) -> None:
        super().__init__(f"Cannot connect to {host}:{port} - {reason}")
        self.host = host
        self.port = port
        self.reason = reason


class CertificateUnavailable(FatalAnalysisError):
    def __init__(self, host: str, port: int) -> None:
        super().__init__(f"Could not retrieve a certificate from {host}:{port}")
        self.host = host
        self.port = port


class CertificateParseError(FatalAnalysisError):
    pass


class SignalCollectionError(AnalyzerError):
    """One DNS/HTTP/geo lookup failed; only that field is lost."""

    def __init__(self, signal: str, reason: str) -> None:
        super().__init__(f"{signal}: {reason}")
        self.signal = signal
        self.reason = reason


class ChainEntryParseError(AnalyzerError):
    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"chain entry {index}: {reason}")
        self.index = index
        self.reason = reason
