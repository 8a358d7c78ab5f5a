"""SiteGrade vision adapter package."""

from vision.client import VisionAnalyzer
from vision.schemas import (
    CombinedVision,
    ComplianceVision,
    DesignVision,
    ResponsivenessVision,
    VisionComplianceResult,
    degraded_combined_vision,
)

__all__ = [
    "VisionAnalyzer",
    "CombinedVision",
    "ComplianceVision",
    "DesignVision",
    "ResponsivenessVision",
    "VisionComplianceResult",
    "degraded_combined_vision",
]
