"""SiteGrade recommendations package."""

from recommendations.engine import RecommendationEngine
from recommendations.rules import OPPORTUNITY_FIXES, Rule

__all__ = [
    "RecommendationEngine",
    "OPPORTUNITY_FIXES",
    "Rule",
]
