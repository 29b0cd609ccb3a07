# report_fallback.py
import copy
from typing import Any, Dict, Mapping

from nutrisnap_ai.schemas import NutritionReport

DEFAULT_REPORT = NutritionReport(
    name="Slovenské tradičné jedlá",
    calories="1800",
    servingSize="Veľký tanier",
    macros={"protein": "80", "carbs": "165", "fat": "90", "fiber": "12"},
    vitamins={"vitaminC": "15%", "vitaminA": "25%"},
    minerals={"calcium": "30%", "iron": "40%"},
    healthScore="6",
    healthTips=[
        "Veľmi vysoký obsah kalórií, vhodné rozdeliť na menšie porcie",
        "Obsahuje veľa nasýtených tukov zo slaniny a syra",
        "Kombinuj s čerstvou zeleninou pre lepšiu výživovú hodnotu",
    ],
)

class ReportFallback:
    """Builds schema-complete reports when the model reply cannot be used"""

    PARTIAL_CORRECTION_MARKER = " (čiastočná oprava)"
    CORRECTION_DISCLAIMER = (
        "Opravu sa nepodarilo úplne overiť, hodnoty vychádzajú z predchádzajúcej analýzy",
        "Skontroluj názov jedla a veľkosť porcie a v prípade potreby opravu zopakuj",
        "Nutričné hodnoty ber ako orientačné odhady",
    )

    def default_report(self, raw_text: str) -> Dict[str, Any]:
        """Fixed representative values, keeping the unparsed reply in `popis`"""
        report = DEFAULT_REPORT.to_json()
        report["popis"] = raw_text
        return report

    def from_previous(self, previous: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Keep the previous analysis, mark the name as a partial correction and
        replace the tips with a disclaimer. Keys the caller left out or set to
        null are taken from the default report so the result stays complete.
        """
        report = DEFAULT_REPORT.to_json()
        report.update({key: value for key, value in copy.deepcopy(dict(previous)).items() if value is not None})

        name = report.get("nazovJedla")
        report["nazovJedla"] = f"{'' if name is None else name}{self.PARTIAL_CORRECTION_MARKER}"
        report["zdravotneRady"] = list(self.CORRECTION_DISCLAIMER)
        return report
