"""Sequential analysis pipeline for one submitted request."""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from analyzers import (
    AnalyticsAnalyzer,
    ComplianceAnalyzer,
    DesignAnalyzer,
    PerformanceAnalyzer,
    PillarResult,
    ResponsivenessAnalyzer,
    SecurityAnalyzer,
    SEOAnalyzer,
)
from config import settings
from db.models import Pillar, RequestStatus, utcnow
from extraction import ExtractionEngine, ExtractionOptions
from grading import calculate_overall_grade
from notifications import (
    AnalysisEmailData,
    EmailService,
    PillarSummary,
    send_analysis_complete_email,
    send_analysis_failed_email,
)
from vision import VisionAnalyzer
from worker.store import AnalysisStore, RequestSnapshot

logger = logging.getLogger(__name__)


@dataclass
class PipelineOutcome:
    request_id: uuid.UUID
    status: RequestStatus
    overall_score: int = 0
    overall_grade: str | None = None
    pillars: dict[Pillar, PillarResult] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "request_id": str(self.request_id),
            "status": self.status.value,
            "overall_score": self.overall_score,
            "overall_grade": self.overall_grade,
            "pillars": {
                pillar.value: {"score": result.score, "analyzed": result.analyzed}
                for pillar, result in self.pillars.items()
            },
            "error": self.error,
        }


def aggregate(results: dict[Pillar, PillarResult]) -> tuple[int, str]:
    """Overall score and grade from the analyzed pillars only."""
    scores = [result.score for result in results.values() if result.analyzed]
    overall_score = round(sum(scores) / len(scores)) if scores else 0
    return overall_score, calculate_overall_grade(scores)


class AnalysisPipeline:
    """
    Runs extraction, vision and the seven pillars for one request.

    Steps run strictly in order: extraction, vision, performance,
    design, responsiveness, seo, security, compliance, analytics,
    aggregate, notify. Each pillar result is stored before the next
    pillar starts, so a crash keeps whatever already landed.

    A pillar that raises is recorded as not analyzed and the run goes
    on. Anything else that escapes (extraction above all) fails the
    request and triggers the failure email. The browser is released
    in every case.
    """

    def __init__(
        self,
        store: AnalysisStore,
        *,
        engine_factory: Callable[[], ExtractionEngine] = ExtractionEngine,
        vision: VisionAnalyzer | None = None,
        performance: PerformanceAnalyzer | None = None,
        design: DesignAnalyzer | None = None,
        responsiveness: ResponsivenessAnalyzer | None = None,
        seo: SEOAnalyzer | None = None,
        security: SecurityAnalyzer | None = None,
        compliance: ComplianceAnalyzer | None = None,
        analytics: AnalyticsAnalyzer | None = None,
        email_service: EmailService | None = None,
    ):
        self.store = store
        self.engine_factory = engine_factory
        self.vision = vision or VisionAnalyzer()
        self.performance = performance or PerformanceAnalyzer()
        self.design = design or DesignAnalyzer()
        self.responsiveness = responsiveness or ResponsivenessAnalyzer()
        self.seo = seo or SEOAnalyzer()
        self.security = security or SecurityAnalyzer()
        self.compliance = compliance or ComplianceAnalyzer(vision_client=self.vision)
        self.analytics = analytics or AnalyticsAnalyzer()
        self.email_service = email_service

    def run(self, request_id: uuid.UUID) -> PipelineOutcome:
        request = self.store.get_request(request_id)
        if request is None:
            logger.error(f"Analysis request {request_id} not found")
            return PipelineOutcome(request_id, RequestStatus.FAILED, error="Analysis not found")

        if request.status != RequestStatus.PROCESSING:
            logger.warning(f"Skipping analysis {request_id}: status is {request.status.value}")
            return PipelineOutcome(request_id, request.status)

        logger.info(f"Starting analysis {request_id} for {request.url}")
        started = time.monotonic()
        engine = self.engine_factory()

        try:
            results = self._run_steps(request, engine)

            overall_score, overall_grade = aggregate(results)
            self.store.update_metadata(
                request_id,
                total_score=overall_score,
                analysis_duration=int(time.monotonic() - started),
            )
            self.store.mark_completed(request_id)
            logger.info(f"Analysis {request_id} completed: {overall_score} ({overall_grade})")

            self._notify_completed(request, overall_score, results)
            return PipelineOutcome(
                request_id,
                RequestStatus.COMPLETED,
                overall_score=overall_score,
                overall_grade=overall_grade,
                pillars=results,
            )

        except Exception as e:
            logger.exception(f"Analysis {request_id} failed: {e}")
            message = str(e) or type(e).__name__
            try:
                self.store.mark_failed(request_id, message)
            except Exception as store_error:
                logger.exception(f"Could not mark analysis {request_id} as failed: {store_error}")
            send_analysis_failed_email(request.url, request.email, message, self.email_service)
            return PipelineOutcome(request_id, RequestStatus.FAILED, error=message)

        finally:
            engine.close()

    def _run_steps(self, request: RequestSnapshot, engine) -> dict[Pillar, PillarResult]:
        url = request.url
        data = engine.extract(url, ExtractionOptions(full_page_screenshot=True))
        self._save_snapshot(request.id, data)

        vision = self.vision.analyze_combined_visual(data.screenshot_base64(), url)

        results: dict[Pillar, PillarResult] = {}

        def record(pillar: Pillar, step: Callable[[], PillarResult]) -> PillarResult:
            logger.info(f"Running {pillar.value} analysis for {request.id}")
            try:
                result = step()
            except Exception as e:
                logger.exception(f"{pillar.value} analyzer raised for {request.id}: {e}")
                result = PillarResult.failed(str(e))
            self.store.save_result(request.id, pillar, result)
            results[pillar] = result
            return result

        performance = record(Pillar.PERFORMANCE, lambda: self.performance.analyze(url, data))
        cls = (performance.raw_data.get("core_web_vitals") or {}).get("cls")

        record(Pillar.DESIGN, lambda: self.design.analyze(data, cls=cls, vision=vision.design))
        record(
            Pillar.RESPONSIVENESS,
            lambda: self.responsiveness.analyze(
                data, vision=vision.responsiveness, browser=engine.browser
            ),
        )
        record(Pillar.SEO, lambda: self.seo.analyze(data))
        record(Pillar.SECURITY, lambda: self.security.analyze(url))
        record(Pillar.COMPLIANCE, lambda: self.compliance.analyze(data, vision=vision.compliance))
        record(Pillar.ANALYTICS, lambda: self.analytics.analyze(data))

        return results

    def _save_snapshot(self, request_id: uuid.UUID, data) -> None:
        try:
            self.store.update_metadata(request_id, extracted_data=data.to_dict())
        except Exception as e:
            logger.exception(f"Could not store extracted data for {request_id}: {e}")

    def _notify_completed(
        self,
        request: RequestSnapshot,
        overall_score: int,
        results: dict[Pillar, PillarResult],
    ) -> None:
        email_data = AnalysisEmailData(
            url=request.url,
            email=request.email,
            request_id=str(request.id),
            overall_score=overall_score,
            pillars=[
                PillarSummary(
                    name=pillar.value,
                    score=result.score,
                    analyzed=result.analyzed,
                    insights=result.insights,
                    recommendations=list(result.recommendations),
                )
                for pillar, result in results.items()
            ],
            analysis_date=utcnow(),
            report_url=f"{settings.public_base_url.rstrip('/')}/api/v1/analyses/{request.id}",
        )
        send_analysis_complete_email(email_data, self.email_service)
