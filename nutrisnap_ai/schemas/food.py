from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

# Top-level wire keys every report carries
REPORT_FIELDS = (
    "nazovJedla",
    "kalorie",
    "velkostPorcie",
    "makronutrienty",
    "vitaminy",
    "mineraly",
    "zdravotneSkore",
    "zdravotneRady",
)

class AnalysisMode(str, Enum):
    FRESH = "fresh"
    FULL_CORRECTION = "full_correction"
    PARTIAL_CORRECTION = "partial_correction"

class Macros(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    protein: str = Field(alias="bielkoviny")
    carbs: str = Field(alias="sacharidy")
    fat: str = Field(alias="tuky")
    fiber: str = Field(alias="vlaknina")

class Vitamins(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vitaminC: str
    vitaminA: str

class Minerals(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    calcium: str = Field(alias="vápnik")
    iron: str = Field(alias="železo")

class NutritionReport(BaseModel):
    """Nutrition report with Slovak wire keys"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="nazovJedla")
    calories: str = Field(alias="kalorie")
    servingSize: str = Field(alias="velkostPorcie")
    macros: Macros = Field(alias="makronutrienty")
    vitamins: Vitamins = Field(alias="vitaminy")
    minerals: Minerals = Field(alias="mineraly")
    healthScore: str = Field(alias="zdravotneSkore")
    healthTips: List[str] = Field(alias="zdravotneRady", min_length=3, max_length=3)
    rawNote: Optional[str] = Field(default=None, alias="popis")

    def to_json(self) -> Dict[str, Any]:
        """Convert the model to a JSON-serializable dictionary keyed by wire names"""
        return self.model_dump(by_alias=True, exclude_none=True)

class AnalyzePayload(BaseModel):
    """HTTP body of an analysis request"""
    image: Optional[str] = None
    correction: Optional[bool] = False
    correctionText: Optional[str] = None
    previousAnalysis: Optional[Dict[str, Any]] = None

class AnalysisRequest(BaseModel):
    """One analysis request with its mode resolved"""
    image: str
    mode: AnalysisMode
    correction_text: Optional[str] = None
    previous_analysis: Optional[Dict[str, Any]] = None

    @property
    def is_correction(self) -> bool:
        return self.mode != AnalysisMode.FRESH

    @classmethod
    def from_payload(cls, payload: AnalyzePayload) -> 'AnalysisRequest':
        """
        Resolve the mode once: a previous analysis together with a correction
        signal is a partial correction, a correction signal alone is a full
        correction, anything else is a fresh analysis.
        """
        correction_text = payload.correctionText or ""
        wants_correction = bool(payload.correction) or bool(correction_text.strip())

        if wants_correction and payload.previousAnalysis:
            return cls(
                image=payload.image,
                mode=AnalysisMode.PARTIAL_CORRECTION,
                correction_text=correction_text,
                previous_analysis=payload.previousAnalysis,
            )
        if wants_correction:
            return cls(image=payload.image, mode=AnalysisMode.FULL_CORRECTION, correction_text=correction_text)
        return cls(image=payload.image, mode=AnalysisMode.FRESH)
