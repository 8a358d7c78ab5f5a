"""Screenshot review through a multimodal chat model."""

import json
import logging
import re

from openai import OpenAI
from pydantic import ValidationError

from config import settings
from vision.schemas import (
    CombinedVision,
    VisionComplianceResult,
    degraded_combined_vision,
    degraded_compliance_result,
)

logger = logging.getLogger(__name__)

COMBINED_PROMPT = """Analyze this website screenshot for COMPLIANCE, DESIGN, and RESPONSIVENESS in one comprehensive analysis.

COMPLIANCE ANALYSIS:
- Cookie consent banners/notices (detect and confidence level 0-100)
- Color contrast quality for accessibility
- Text readability and sizing
- Only recommend features that are clearly missing or problematic

DESIGN ANALYSIS:
- Primary call-to-action identification
- Overall visual style and aesthetics
- Design issues and problems
- Design improvement recommendations

RESPONSIVENESS ANALYSIS:
- Layout structure and organization
- Mobile optimization assessment
- Responsive design issues
- Improvement recommendations

Website URL: {url}

Respond with this exact JSON structure:
{{
  "compliance": {{
    "cookieBanner": {{"detected": boolean, "confidence": number, "description": "brief description"}},
    "accessibility": {{"colorContrast": "good|poor|unknown", "textReadability": "good|poor|unknown"}},
    "overallCompliance": {{"score": number (0-100), "recommendations": ["max 3 specific recommendations"]}}
  }},
  "design": {{
    "primaryCTA": "description of main CTA",
    "visualStyle": "overall design assessment",
    "designIssues": ["list of design problems"],
    "recommendations": ["max 3 design improvements"]
  }},
  "responsiveness": {{
    "layoutStructure": "layout assessment",
    "mobileOptimization": "mobile-specific evaluation",
    "issues": ["responsive design problems"],
    "recommendations": ["max 3 responsive improvements"]
  }}
}}"""

COMPLIANCE_PROMPT = """Analyze this website screenshot for compliance features. Focus on:

1. COOKIE CONSENT BANNERS/POPUPS: position, style and content; rate detection confidence 0-100.
2. PRIVACY & LEGAL ELEMENTS: privacy policy links, terms of service links, GDPR mentions.
3. ACCESSIBILITY: color contrast, text readability and size, button/clickable element sizes.
4. OVERALL ASSESSMENT: compliance score 0-100, specific issues, actionable recommendations
   (only recommend features that are clearly missing or severely problematic).

Website URL: {url}

Respond with JSON following this structure:
{{
  "cookieBanner": {{"detected": boolean, "confidence": number, "description": "what you see", "type": "banner|modal|popup|bar", "position": "top|bottom|center|corner"}},
  "privacyElements": {{"privacyPolicyLink": boolean, "termsLink": boolean, "gdprMentions": boolean}},
  "accessibility": {{"colorContrast": "good|poor|unknown", "textReadability": "good|poor|unknown", "buttonSizes": "adequate|small|unknown"}},
  "overallCompliance": {{"score": number, "issues": ["..."], "recommendations": ["..."]}}
}}"""


class VisionAnalyzer:
    """
    Sends page screenshots to a multimodal model.

    Every method fails soft: network, quota and parsing problems are
    logged and answered with the degraded default result.
    """

    def __init__(self, client: OpenAI | None = None, model: str | None = None):
        self.model = model or settings.vision_model
        self._client = client

    @property
    def client(self) -> OpenAI | None:
        if self._client is None and settings.openai_api_key:
            self._client = OpenAI(api_key=settings.openai_api_key)
        return self._client

    def analyze_combined_visual(self, screenshot_base64: str, url: str) -> CombinedVision:
        """Review design, responsiveness and compliance with a single model call."""
        if not screenshot_base64 or self.client is None:
            logger.info(f"Skipping vision analysis for {url}: no screenshot or API key")
            return degraded_combined_vision()

        try:
            content = self._ask(COMBINED_PROMPT.format(url=url), screenshot_base64, "low", 1000)
            return CombinedVision.model_validate(_parse_json(content))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Unusable combined vision answer for {url}: {e}")
        except Exception as e:
            logger.exception(f"Combined vision analysis failed for {url}: {e}")
        return degraded_combined_vision()

    def analyze_screenshot_for_compliance(
        self, screenshot_base64: str, url: str
    ) -> VisionComplianceResult:
        """Standalone, more detailed compliance review of one screenshot."""
        if not screenshot_base64 or self.client is None:
            logger.info(f"Skipping compliance vision for {url}: no screenshot or API key")
            return degraded_compliance_result()

        try:
            content = self._ask(COMPLIANCE_PROMPT.format(url=url), screenshot_base64, "high", 1500)
            return VisionComplianceResult.model_validate(_parse_json(content))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Unusable compliance vision answer for {url}: {e}")
        except Exception as e:
            logger.exception(f"Compliance vision analysis failed for {url}: {e}")
        return degraded_compliance_result()

    def _ask(self, prompt: str, screenshot_base64: str, detail: str, max_tokens: int) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:image/jpeg;base64,{screenshot_base64}",
                                "detail": detail,
                            },
                        },
                    ],
                }
            ],
            response_format={"type": "json_object"},
            max_tokens=max_tokens,
            temperature=0.1,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("No response from vision model")
        return content


def _parse_json(content: str) -> dict:
    """Pull the JSON object out of the model's answer."""
    match = re.search(r"\{[\s\S]*\}", content)
    if not match:
        raise ValueError("Could not find JSON in vision response")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("Vision response is not a JSON object")
    return data
