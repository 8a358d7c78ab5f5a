"""Typed views over the multimodal model's JSON answer."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Assessment = Literal["good", "poor", "unknown"]


def _percentage(value):
    """Round and clamp a 0-100 figure the model may send as float or string."""
    if value is None or value == "":
        return None
    return max(0, min(100, round(float(value))))


class VisionModel(BaseModel):
    """Accepts the model's camelCase keys and our snake_case names alike."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Compliance view
# =============================================================================


class CookieBannerVision(VisionModel):
    detected: bool = False
    confidence: int = 0
    description: str = ""
    type: str | None = None
    position: str | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def normalize_confidence(cls, value):
        return _percentage(value) or 0


class AccessibilityVision(VisionModel):
    color_contrast: Assessment = "unknown"
    text_readability: Assessment = "unknown"
    button_sizes: Literal["adequate", "small", "unknown"] = "unknown"

    @field_validator("color_contrast", "text_readability", "button_sizes", mode="before")
    @classmethod
    def normalize_assessment(cls, value, info):
        allowed = ("adequate", "small") if info.field_name == "button_sizes" else ("good", "poor")
        value = str(value or "").strip().lower()
        return value if value in allowed else "unknown"


class OverallComplianceVision(VisionModel):
    # None means the model gave no score; it must never lift a pillar score
    score: int | None = None
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def normalize_score(cls, value):
        return _percentage(value)


class ComplianceVision(VisionModel):
    cookie_banner: CookieBannerVision = Field(default_factory=CookieBannerVision)
    accessibility: AccessibilityVision = Field(default_factory=AccessibilityVision)
    overall_compliance: OverallComplianceVision = Field(default_factory=OverallComplianceVision)
    available: bool = True


class PrivacyElementsVision(VisionModel):
    privacy_policy_link: bool = False
    terms_link: bool = False
    gdpr_mentions: bool = False


class VisionComplianceResult(ComplianceVision):
    """Answer of the standalone, compliance-only screenshot review."""

    privacy_elements: PrivacyElementsVision = Field(default_factory=PrivacyElementsVision)


# =============================================================================
# Design and responsiveness views
# =============================================================================


class DesignVision(VisionModel):
    primary_cta: str = Field(default="", alias="primaryCTA")
    visual_style: str = ""
    design_issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    available: bool = True


class ResponsivenessVision(VisionModel):
    layout_structure: str = ""
    mobile_optimization: str = ""
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    available: bool = True


class CombinedVision(VisionModel):
    """One model answer fanned out to the design, responsiveness and compliance pillars."""

    compliance: ComplianceVision
    design: DesignVision
    responsiveness: ResponsivenessVision

    @property
    def available(self) -> bool:
        return self.design.available


# =============================================================================
# Degraded defaults
# =============================================================================

VISION_FAILED_TEXT = "Vision analysis failed - using text-based detection only"


def degraded_compliance_vision() -> ComplianceVision:
    return ComplianceVision(
        cookie_banner=CookieBannerVision(description=VISION_FAILED_TEXT),
        overall_compliance=OverallComplianceVision(
            recommendations=["Manual review recommended for accurate compliance assessment"],
        ),
        available=False,
    )


def degraded_combined_vision() -> CombinedVision:
    return CombinedVision(
        compliance=degraded_compliance_vision(),
        design=DesignVision(
            primary_cta="Could not analyze due to vision API failure",
            visual_style="Analysis unavailable",
            design_issues=["Vision analysis unavailable"],
            recommendations=["Manual design review recommended"],
            available=False,
        ),
        responsiveness=ResponsivenessVision(
            layout_structure="Could not analyze layout",
            mobile_optimization="Analysis unavailable",
            issues=["Vision analysis unavailable"],
            recommendations=["Manual responsiveness review recommended"],
            available=False,
        ),
    )


def degraded_compliance_result() -> VisionComplianceResult:
    return VisionComplianceResult(
        cookie_banner=CookieBannerVision(description=VISION_FAILED_TEXT),
        overall_compliance=OverallComplianceVision(
            issues=["Vision analysis unavailable - limited compliance detection"],
            recommendations=["Manual review recommended for accurate compliance assessment"],
        ),
        available=False,
    )
