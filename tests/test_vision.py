import json
from types import SimpleNamespace

from vision import CombinedVision, VisionAnalyzer, degraded_combined_vision


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


COMBINED_ANSWER = {
    "compliance": {
        "cookieBanner": {"detected": True, "confidence": "85.4", "description": "Bottom bar"},
        "accessibility": {"colorContrast": "GOOD", "textReadability": "meh", "buttonSizes": "small"},
        "overallCompliance": {"score": 88, "issues": [], "recommendations": ["Add a skip link"]},
    },
    "design": {"primaryCTA": "Get Started", "visualStyle": "Minimalist", "designIssues": []},
    "responsiveness": {"layoutStructure": "Single column", "mobileOptimization": "Good"},
}


def test_combined_answer_is_parsed_into_three_views():
    completions = FakeCompletions(content="Here you go:\n" + json.dumps(COMBINED_ANSWER))
    analyzer = VisionAnalyzer(client=fake_client(completions), model="test-model")

    result = analyzer.analyze_combined_visual("aGVsbG8=", "https://example.org")

    assert isinstance(result, CombinedVision)
    assert result.available
    assert result.compliance.cookie_banner.confidence == 85
    assert result.compliance.accessibility.color_contrast == "good"
    assert result.compliance.accessibility.text_readability == "unknown"
    assert result.compliance.accessibility.button_sizes == "small"
    assert result.compliance.overall_compliance.score == 88
    assert result.design.primary_cta == "Get Started"
    assert result.responsiveness.layout_structure == "Single column"

    request = completions.calls[0]
    assert request["model"] == "test-model"
    assert request["response_format"] == {"type": "json_object"}
    image_part = request["messages"][0]["content"][1]
    assert image_part["image_url"]["url"] == "data:image/jpeg;base64,aGVsbG8="
    assert image_part["image_url"]["detail"] == "low"


def test_no_client_returns_degraded_result_without_calling_out():
    result = VisionAnalyzer(client=None).analyze_combined_visual("aGVsbG8=", "https://example.org")

    assert not result.available
    assert result.compliance.overall_compliance.score is None
    assert result.design.recommendations == ["Manual design review recommended"]


def test_empty_screenshot_skips_the_model():
    completions = FakeCompletions(content=json.dumps(COMBINED_ANSWER))
    result = VisionAnalyzer(client=fake_client(completions)).analyze_combined_visual("", "https://example.org")

    assert not result.available
    assert completions.calls == []


def test_model_failure_degrades():
    completions = FakeCompletions(error=RuntimeError("quota exceeded"))
    result = VisionAnalyzer(client=fake_client(completions)).analyze_combined_visual(
        "aGVsbG8=", "https://example.org"
    )
    assert result == degraded_combined_vision()


def test_unparseable_answer_degrades():
    completions = FakeCompletions(content="I cannot see the image")
    result = VisionAnalyzer(client=fake_client(completions)).analyze_combined_visual(
        "aGVsbG8=", "https://example.org"
    )
    assert not result.available


def test_compliance_review_uses_high_detail():
    answer = {
        "cookieBanner": {"detected": False},
        "privacyElements": {"privacyPolicyLink": True},
        "overallCompliance": {"score": 61},
    }
    completions = FakeCompletions(content=json.dumps(answer))
    result = VisionAnalyzer(client=fake_client(completions)).analyze_screenshot_for_compliance(
        "aGVsbG8=", "https://example.org"
    )

    assert result.available
    assert result.privacy_elements.privacy_policy_link
    assert result.overall_compliance.score == 61
    assert completions.calls[0]["messages"][0]["content"][1]["image_url"]["detail"] == "high"
