from nutrisnap_ai.schemas.food import (
    REPORT_FIELDS,
    AnalysisMode,
    AnalysisRequest,
    AnalyzePayload,
    NutritionReport,
)
