# food_analyser.py
import logging
from typing import Dict, Any, Optional
from nutrisnap_ai.client import BedrockClient
from nutrisnap_ai.normalizer import ResponseNormalizer
from nutrisnap_ai.prompts import PromptPair, select_prompt
from nutrisnap_ai.schemas import AnalysisRequest
from nutrisnap_ai.template_manager import AnalysisProfile, ProfileManager
from nutrisnap_ai.usecases.base import UseCase
from nutrisnap_ai.utils.image_utils import ImageProcessor

logger = logging.getLogger(__name__)

class FoodAnalyser(UseCase):
    """Nutrition report for a food photo, with correction support"""

    def __init__(self, client: Optional[BedrockClient] = None,
                 profile_manager: Optional[ProfileManager] = None,
                 image_processor: Optional[ImageProcessor] = None,
                 normalizer: Optional[ResponseNormalizer] = None):
        super().__init__(client=client, profile_manager=profile_manager)
        self.image_processor = image_processor or ImageProcessor()
        self.normalizer = normalizer or ResponseNormalizer()

    def format_prompt(self, request: AnalysisRequest, profile: AnalysisProfile) -> PromptPair:
        return select_prompt(request, strict=profile.strict_json)

    def invoke(self, prompt: PromptPair, request: AnalysisRequest, profile: AnalysisProfile) -> Dict[str, Any]:
        image = self.image_processor.load(request.image)
        logger.info(f"Making Bedrock request ({profile.name})...")
        return self.client.invoke(
            prompt.user,
            system=prompt.system,
            image=image,
            max_tokens=profile.max_tokens,
            temperature=profile.temperature,
        )

    def parse_response(self, response: Dict[str, Any], request: AnalysisRequest) -> Dict[str, Any]:
        """Normalize the reply; unparsable text degrades to a fallback report"""
        return self.normalizer.normalize(response["text"], request)
