"""Turns a performance report into insights and ordered recommendations."""

import logging

from recommendations.rules import (
    BASELINE_DEFAULTS,
    CORE_WEB_VITAL_RULES,
    HEALTHY_DEFAULTS,
    INSIGHT_BANDS,
    METRIC_RULES,
    OPPORTUNITY_FIXES,
    POOR_INSIGHT,
    Rule,
)

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """
    Evaluates the rule tables against a performance report.

    The report is the Performance pillar's raw data: `score`,
    `core_web_vitals`, `metrics` and `opportunities` (worst first).
    Output order is vitals, then the top opportunities, then lab metrics.
    """

    MAX_RECOMMENDATIONS = 8
    MAX_OPPORTUNITIES = 5

    def generate(self, report: dict) -> list[str]:
        recommendations: list[str] = []

        for rule in self._triggered(CORE_WEB_VITAL_RULES, report):
            recommendations.extend(rule.fixes)

        for opportunity in (report.get("opportunities") or [])[: self.MAX_OPPORTUNITIES]:
            fix = OPPORTUNITY_FIXES.get(opportunity.get("id", ""))
            if fix:
                recommendations.append(fix)
            elif opportunity.get("title") and opportunity.get("description"):
                recommendations.append(f"{opportunity['title']}: {opportunity['description']}")

        for rule in self._triggered(METRIC_RULES, report):
            recommendations.extend(rule.fixes)

        if not recommendations:
            defaults = HEALTHY_DEFAULTS if (report.get("score") or 0) >= 90 else BASELINE_DEFAULTS
            recommendations.extend(defaults)

        return recommendations[: self.MAX_RECOMMENDATIONS]

    def insights(self, score: float) -> str:
        for lower_bound, message in INSIGHT_BANDS:
            if score >= lower_bound:
                return message
        return POOR_INSIGHT

    def _triggered(self, rules: list[Rule], report: dict) -> list[Rule]:
        triggered = []
        for rule in rules:
            try:
                if rule.condition(report):
                    triggered.append(rule)
                    logger.debug(f"Rule triggered: {rule.id}")
            except Exception as e:
                logger.warning(f"Error evaluating rule {rule.id}: {e}")
        return triggered
