import json
import string
from dataclasses import dataclass
from typing import Any, Mapping

from nutrisnap_ai.schemas import AnalysisMode, AnalysisRequest


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str


STRICT_SYSTEM_PROMPT = (
    "You are a nutritional analysis expert. You MUST respond with valid JSON only. "
    "Do not include any text before or after the JSON. Do not use markdown formatting. "
    "Return only raw JSON."
)

RELAXED_SYSTEM_PROMPT = (
    "You are a nutritional analysis expert. "
    "Respond with a single JSON object that follows the requested structure."
)

REPORT_SCHEMA = """{
  "nazovJedla": "názov jedla v slovenčine",
  "kalorie": "počet kalórií ako číslo",
  "velkostPorcie": "popis porcie v slovenčine",
  "makronutrienty": {
    "bielkoviny": "gramy ako číslo",
    "sacharidy": "gramy ako číslo",
    "tuky": "gramy ako číslo",
    "vlaknina": "gramy ako číslo"
  },
  "vitaminy": {
    "vitaminC": "denná hodnota v percentách",
    "vitaminA": "denná hodnota v percentách"
  },
  "mineraly": {
    "vápnik": "denná hodnota v percentách",
    "železo": "denná hodnota v percentách"
  },
  "zdravotneSkore": "číslo z 10",
  "zdravotneRady": [
    "slovenská rada 1",
    "slovenská rada 2",
    "slovenská rada 3"
  ]
}"""

FRESH_PROMPT = string.Template("""Analyze this food image and provide detailed nutritional information. You MUST respond with ONLY valid JSON in Slovak language using this EXACT structure:

$schema

If multiple dishes are visible, analyze them as a combined meal. Be specific with quantities. Respond ONLY with the JSON object, no other text.""")

FULL_CORRECTION_PROMPT = string.Template("""The user reviewed an earlier analysis of this food image and reported that it was wrong.

User correction:
\"\"\"
$correction_text
\"\"\"

Treat the correction as the true identification of the food. Analyze the image again and derive the ENTIRE nutritional report from scratch, so that every value is consistent with the corrected identification. You MUST respond with ONLY valid JSON in Slovak language using this EXACT structure:

$schema

If multiple dishes are visible, analyze them as a combined meal. Be specific with quantities. Respond ONLY with the JSON object, no other text.""")

PARTIAL_CORRECTION_PROMPT = string.Template("""The user reviewed the previous analysis of this food image and reported a correction.

Previous analysis:
$previous_analysis

User correction:
\"\"\"
$correction_text
\"\"\"

Update the previous analysis according to the correction. Change ONLY the fields that the correction actually affects (for example the dish name, calories, macronutrients, vitamins, minerals or health score when the food or its preparation changes). Every other field MUST keep exactly the value it has in the previous analysis. Return the complete updated analysis. You MUST respond with ONLY valid JSON in Slovak language using this EXACT structure:

$schema

Respond ONLY with the JSON object, no other text.""")

NO_CORRECTION_DETAILS = "(no details provided)"


def serialize_previous_analysis(previous: Mapping[str, Any]) -> str:
    return json.dumps(previous, ensure_ascii=False, indent=2)


def select_prompt(request: AnalysisRequest, strict: bool = True) -> PromptPair:
    """
    Build the system and user instructions for a request.

    The result depends only on the request's mode, correction text and
    previous analysis, so identical requests always produce identical text.
    """
    system = STRICT_SYSTEM_PROMPT if strict else RELAXED_SYSTEM_PROMPT
    correction_text = request.correction_text
    if not correction_text or not correction_text.strip():
        correction_text = NO_CORRECTION_DETAILS

    if request.mode == AnalysisMode.PARTIAL_CORRECTION:
        user = PARTIAL_CORRECTION_PROMPT.substitute(
            schema=REPORT_SCHEMA,
            previous_analysis=serialize_previous_analysis(request.previous_analysis),
            correction_text=correction_text,
        )
    elif request.mode == AnalysisMode.FULL_CORRECTION:
        user = FULL_CORRECTION_PROMPT.substitute(schema=REPORT_SCHEMA, correction_text=correction_text)
    else:
        user = FRESH_PROMPT.substitute(schema=REPORT_SCHEMA)

    return PromptPair(system=system, user=user)
