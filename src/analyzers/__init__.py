"""SiteGrade pillar analyzers package."""

from analyzers.analytics import AnalyticsAnalyzer
from analyzers.base import BaseAnalyzer, PillarResult
from analyzers.compliance import ComplianceAnalyzer
from analyzers.design import DesignAnalyzer
from analyzers.performance import PerformanceAnalyzer
from analyzers.responsiveness import DeviceTester, ResponsivenessAnalyzer
from analyzers.security import SecurityAnalyzer
from analyzers.seo import SEOAnalyzer

__all__ = [
    "BaseAnalyzer",
    "PillarResult",
    "PerformanceAnalyzer",
    "DesignAnalyzer",
    "DeviceTester",
    "ResponsivenessAnalyzer",
    "SEOAnalyzer",
    "SecurityAnalyzer",
    "ComplianceAnalyzer",
    "AnalyticsAnalyzer",
]
