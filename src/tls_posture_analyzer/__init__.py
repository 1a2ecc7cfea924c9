"""
TLS certificate and HTTP security posture analysis.

    from tls_posture_analyzer import analyze
    result = analyze("example.com", 443)
    print(result.security_score)
"""

__version__ = "0.1.0"

from .analyzer import analyze, run_analysis
from .config import AnalyzerConfig
from .models import AnalysisResult

__all__ = ["AnalysisResult", "AnalyzerConfig", "__version__", "analyze", "run_analysis"]
