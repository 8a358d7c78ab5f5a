"""Report and failure email rendering."""

from dataclasses import dataclass, field
from datetime import datetime

from jinja2 import BaseLoader, Environment, select_autoescape

from grading import calculate_overall_grade, grade_description, score_to_grade

html_env = Environment(loader=BaseLoader(), autoescape=select_autoescape(["html", "xml"]))
text_env = Environment(loader=BaseLoader(), autoescape=False, trim_blocks=True, lstrip_blocks=True)

RECOMMENDATIONS_PER_PILLAR = 2

FAILURE_CAUSES = [
    "Website is temporarily unavailable - please try again later",
    "Website blocks automated access - check robots.txt or firewall rules",
    "Website responded too slowly - pages must load within about a minute",
    "Invalid URL - ensure the address is correct and publicly reachable",
]


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html: str
    text: str


@dataclass
class PillarSummary:
    name: str
    score: int
    analyzed: bool
    insights: str = ""
    recommendations: list[str] = field(default_factory=list)

    @property
    def grade(self) -> str:
        return score_to_grade(self.score)

    @property
    def grade_description(self) -> str:
        return grade_description(self.grade)

    @property
    def title(self) -> str:
        return self.name.replace("_", " ").title()


@dataclass
class AnalysisEmailData:
    url: str
    email: str
    request_id: str
    overall_score: int
    pillars: list[PillarSummary]
    analysis_date: datetime
    report_url: str | None = None

    @property
    def analyzed_pillars(self) -> list[PillarSummary]:
        return [pillar for pillar in self.pillars if pillar.analyzed]

    @property
    def overall_grade(self) -> str:
        scores = [pillar.score for pillar in self.analyzed_pillars]
        return calculate_overall_grade(scores) if scores else score_to_grade(self.overall_score)


# =============================================================================
# Analysis complete
# =============================================================================

COMPLETE_HTML = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>Your SiteGrade Report</title></head>
  <body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; color: #333; background: #f5f5f5; padding: 20px;">
    <div style="max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; overflow: hidden;">
      <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px 20px; text-align: center;">
        <div style="font-weight: bold; font-size: 48px;">{{ overall_grade }}</div>
        <p style="font-weight: bold; font-size: 18px; margin: 0;">{{ overall_description }}</p>
      </div>
      <div style="padding: 30px 20px;">
        <p>Hi there!</p>
        <p>We've completed the analysis of your website:</p>
        <div style="background: #f8f9fa; padding: 10px; font-family: monospace; word-break: break-all;">{{ data.url }}</div>

        <h3>Your Scores</h3>
        <table style="width: 100%; border-collapse: collapse;">
          <thead>
            <tr>
              <th style="background: #f8f9fa; padding: 12px; text-align: left;">Pillar</th>
              <th style="background: #f8f9fa; padding: 12px; text-align: center;">Grade</th>
              <th style="background: #f8f9fa; padding: 12px; text-align: left;">Rating</th>
            </tr>
          </thead>
          <tbody>
            {% for pillar in data.analyzed_pillars %}
            <tr>
              <td style="padding: 12px; border-bottom: 1px solid #e5e7eb;">{{ pillar.title }}</td>
              <td style="padding: 12px; border-bottom: 1px solid #e5e7eb; text-align: center; font-weight: bold;">{{ pillar.grade }}</td>
              <td style="padding: 12px; border-bottom: 1px solid #e5e7eb;">{{ pillar.grade_description }}</td>
            </tr>
            {% endfor %}
          </tbody>
        </table>

        {% if data.report_url %}
        <p><a href="{{ data.report_url }}" style="display: inline-block; background: #667eea; color: white; padding: 12px 24px; text-decoration: none; border-radius: 4px;">View Full Report</a></p>
        {% endif %}

        <div style="background: #f0f9ff; padding: 15px; border-left: 4px solid #3b82f6; margin: 20px 0;">
          <strong>What's Next?</strong>
          {% for pillar in next_steps %}
          <div style="margin: 15px 0;">
            <strong>{{ pillar.title }} ({{ pillar.grade }}):</strong>
            <ul style="margin: 5px 0 0 20px; padding: 0;">
              {% for recommendation in pillar.recommendations[:per_pillar] %}
              <li>{{ recommendation }}</li>
              {% endfor %}
            </ul>
          </div>
          {% else %}
          <p>Review your detailed analysis and implement the recommended improvements to boost your website's performance and user experience.</p>
          {% endfor %}
        </div>

        <p>Analysis completed on: {{ analysis_date }}</p>
      </div>
      <div style="background: #f8f9fa; padding: 20px; text-align: center; font-size: 14px; color: #666;">
        <p>SiteGrade - Professional Website Analysis</p>
      </div>
    </div>
  </body>
</html>
"""

COMPLETE_TEXT = """SiteGrade Analysis Complete - Grade {{ overall_grade }}

Hi there!

We've completed the analysis of your website: {{ data.url }}

Your Grades:
{% for pillar in data.analyzed_pillars %}
{{ pillar.title }}: {{ pillar.grade }} ({{ pillar.grade_description }})
{% endfor %}

Overall Grade: {{ overall_grade }} - {{ overall_description }}

What's Next?
{% for pillar in next_steps %}
{{ pillar.title }} ({{ pillar.grade }}):
{% for recommendation in pillar.recommendations[:per_pillar] %}
  - {{ recommendation }}
{% endfor %}
{% endfor %}
{% if data.report_url %}

View Full Report: {{ data.report_url }}
{% endif %}

Analysis completed on: {{ analysis_date }}

SiteGrade - Professional Website Analysis
"""


# =============================================================================
# Analysis failed
# =============================================================================

FAILED_HTML = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>Analysis Failed</title></head>
  <body style="font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; color: #333; background: #f5f5f5; padding: 20px;">
    <div style="max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; overflow: hidden;">
      <div style="background: #ef4444; color: white; padding: 30px 20px; text-align: center;">
        <h1>Analysis Failed</h1>
        <p>We encountered an issue analyzing your website</p>
      </div>
      <div style="padding: 30px 20px;">
        <p>Hi there!</p>
        <p>Unfortunately, we encountered an issue while analyzing your website:</p>
        <div style="background: #f8f9fa; padding: 10px; font-family: monospace; word-break: break-all;">{{ url }}</div>
        <div style="background: #fef2f2; border: 1px solid #fecaca; padding: 15px; margin: 20px 0;">
          <strong>Error Details:</strong><br>{{ error }}
        </div>
        <p><strong>Common causes and solutions:</strong></p>
        <ul>
          {% for cause in causes %}
          <li>{{ cause }}</li>
          {% endfor %}
        </ul>
        <p>You can try submitting your website again, or contact our support team if the issue persists.</p>
      </div>
      <div style="background: #f8f9fa; padding: 20px; text-align: center; font-size: 14px; color: #666;">
        <p>SiteGrade - Professional Website Analysis</p>
      </div>
    </div>
  </body>
</html>
"""

FAILED_TEXT = """SiteGrade Analysis Failed

Hi there!

Unfortunately, we encountered an issue while analyzing your website: {{ url }}

Error Details: {{ error }}

Common causes and solutions:
{% for cause in causes %}
- {{ cause }}
{% endfor %}

You can try submitting your website again, or contact our support team if the issue persists.

SiteGrade - Professional Website Analysis
"""


def render_analysis_complete(data: AnalysisEmailData) -> EmailTemplate:
    overall_grade = data.overall_grade
    context = {
        "data": data,
        "overall_grade": overall_grade,
        "overall_description": grade_description(overall_grade),
        "next_steps": [pillar for pillar in data.analyzed_pillars if pillar.recommendations],
        "per_pillar": RECOMMENDATIONS_PER_PILLAR,
        "analysis_date": data.analysis_date.strftime("%d %B %Y, %H:%M UTC"),
    }
    return EmailTemplate(
        subject=f"Your SiteGrade Report is Ready - Grade {overall_grade}",
        html=html_env.from_string(COMPLETE_HTML).render(**context),
        text=text_env.from_string(COMPLETE_TEXT).render(**context),
    )


def render_analysis_failed(url: str, error: str) -> EmailTemplate:
    context = {"url": url, "error": error, "causes": FAILURE_CAUSES}
    return EmailTemplate(
        subject=f"SiteGrade Analysis Failed - {url}",
        html=html_env.from_string(FAILED_HTML).render(**context),
        text=text_env.from_string(FAILED_TEXT).render(**context),
    )
