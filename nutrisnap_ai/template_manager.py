import json
import logging
import os
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, asdict
from .config import config, ModelConfig, ConfigurationError
from .schemas import AnalysisMode

logger = logging.getLogger(__name__)

@dataclass
class AnalysisProfile:
    """Generation settings used for one analysis mode"""
    name: str
    mode: str
    description: str = ""
    max_tokens: int = 1000
    temperature: float = 0.3
    strict_json: bool = True
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)

class ProfileManager:
    """Manager for per-mode analysis profiles"""

    def __init__(self, model_config: Optional[ModelConfig] = None, profiles_file: Optional[str] = None):
        model_config = model_config or config
        self._profiles: Dict[str, AnalysisProfile] = self._default_profiles(model_config)
        self._profiles_file = profiles_file or model_config.profiles_file
        if self._profiles_file:
            self._load_profiles()

    @staticmethod
    def _default_profiles(model_config: ModelConfig) -> Dict[str, AnalysisProfile]:
        # Corrections sample more conservatively than a first analysis
        correction_temperature = min(model_config.temperature, 0.2)
        return {
            AnalysisMode.FRESH.value: AnalysisProfile(
                name="fresh_analysis",
                mode=AnalysisMode.FRESH.value,
                description="First analysis of a food photo",
                max_tokens=model_config.max_tokens,
                temperature=model_config.temperature,
            ),
            AnalysisMode.FULL_CORRECTION.value: AnalysisProfile(
                name="full_correction",
                mode=AnalysisMode.FULL_CORRECTION.value,
                description="Re-analysis after the user corrected the identification",
                max_tokens=model_config.max_tokens,
                temperature=correction_temperature,
            ),
            AnalysisMode.PARTIAL_CORRECTION.value: AnalysisProfile(
                name="partial_correction",
                mode=AnalysisMode.PARTIAL_CORRECTION.value,
                description="Update of the fields affected by the user's correction",
                max_tokens=model_config.max_tokens,
                temperature=correction_temperature,
            ),
        }

    def _load_profiles(self) -> None:
        """Override default profiles from the JSON file"""
        if not os.path.exists(self._profiles_file):
            raise ConfigurationError(f"Profiles file not found: {self._profiles_file}")

        try:
            with open(self._profiles_file, 'r', encoding='utf-8') as f:
                profiles_data = json.load(f)
            for name, data in profiles_data.items():
                profile = AnalysisProfile(name=name, **data)
                if profile.mode not in self._profiles:
                    raise ConfigurationError(f"Unknown analysis mode in profile {name}: {profile.mode}")
                if profile.is_active:
                    self._profiles[profile.mode] = profile
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid profiles file {self._profiles_file}: {str(e)}")

        logger.info(f"Loaded analysis profiles from {self._profiles_file}")

    def get_profile(self, mode: AnalysisMode) -> AnalysisProfile:
        """Get the profile used for a mode"""
        return self._profiles[AnalysisMode(mode).value]

    def list_profiles(self) -> List[AnalysisProfile]:
        return list(self._profiles.values())
