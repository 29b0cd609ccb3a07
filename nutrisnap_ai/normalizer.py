import json
import logging
from typing import Any, Dict, Optional
from prometheus_client import Counter
from .client import registry
from .schemas import REPORT_FIELDS, AnalysisRequest
from .utils.fence import strip_code_fence
from .utils.report_fallback import ReportFallback

logger = logging.getLogger(__name__)

ANALYSIS_COUNTER = Counter('nutrisnap_analyses_total', 'Normalized analyses by mode and outcome', ['mode', 'outcome'], registry=registry)

class ResponseNormalizer:
    """Turns the model's reply text into a schema-complete report"""

    def __init__(self, fallback: Optional[ReportFallback] = None):
        self.fallback = fallback or ReportFallback()

    def parse(self, text: str) -> Optional[Dict[str, Any]]:
        """
        Parse the unwrapped reply as a report

        Returns:
            The parsed object, or None when the reply is not JSON or lacks
            any of the top-level report fields
        """
        cleaned = strip_code_fence(text)
        try:
            parsed = json.loads(cleaned)
        except (ValueError, RecursionError):
            logger.warning("JSON parsing failed, creating fallback response")
            return None

        if not isinstance(parsed, dict):
            logger.warning(f"Reply parsed as {type(parsed).__name__}, expected an object")
            return None

        missing = [key for key in REPORT_FIELDS if parsed.get(key) is None]
        if missing:
            logger.warning(f"Reply is missing report fields: {missing}")
            return None

        return parsed

    def normalize(self, text: str, request: AnalysisRequest) -> Dict[str, Any]:
        """
        Build the report for a request from the reply text

        Args:
            text: Raw reply text from the model
            request: The request the reply belongs to

        Returns:
            The parsed report, or a fallback report when parsing fails
        """
        report = self.parse(text)
        if report is not None:
            logger.info("JSON validation successful")
            ANALYSIS_COUNTER.labels(mode=request.mode.value, outcome="parsed").inc()
            return report

        if request.is_correction and request.previous_analysis:
            ANALYSIS_COUNTER.labels(mode=request.mode.value, outcome="fallback_previous").inc()
            return self.fallback.from_previous(request.previous_analysis)

        ANALYSIS_COUNTER.labels(mode=request.mode.value, outcome="fallback_default").inc()
        return self.fallback.default_report(text)
