from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
import logging
import time
from ..client import BedrockClient
from ..prompts import PromptPair
from ..schemas import AnalysisRequest
from ..template_manager import ProfileManager, AnalysisProfile

logger = logging.getLogger(__name__)

class UseCase(ABC):
    """Base class for all AI use cases"""

    def __init__(self, client: Optional[BedrockClient] = None, profile_manager: Optional[ProfileManager] = None):
        """
        Initialize the use case

        Args:
            client: Optional BedrockClient instance. If not provided, a new one will be created.
            profile_manager: Optional ProfileManager with the per-mode generation settings
        """
        self.client = client or BedrockClient()
        self.profile_manager = profile_manager or ProfileManager()

    def ensure_ready(self) -> None:
        """Raise ConfigurationError when the upstream call cannot be made"""
        self.client.ensure_credentials()

    @abstractmethod
    def format_prompt(self, request: AnalysisRequest, profile: AnalysisProfile) -> PromptPair:
        """
        Format the prompt for the specific use case

        Args:
            request: The validated request
            profile: Generation settings for the request's mode

        Returns:
            System and user instructions
        """
        pass

    @abstractmethod
    def parse_response(self, response: Dict[str, Any], request: AnalysisRequest) -> Dict[str, Any]:
        """
        Parse the model response for the specific use case

        Args:
            response: Raw model response
            request: The request the response belongs to

        Returns:
            Parsed and formatted response
        """
        pass

    @abstractmethod
    def invoke(self, prompt: PromptPair, request: AnalysisRequest, profile: AnalysisProfile) -> Dict[str, Any]:
        pass

    def run(self, request: AnalysisRequest) -> Dict[str, Any]:
        """
        Execute the use case: prompt, one model call, parse

        Args:
            request: The validated request

        Returns:
            The result of the use case execution
        """
        start_time = time.time()
        request_id = f"req_{id(request):x}"
        logger.info(f"Processing {request.mode.value} request {request_id}")

        try:
            profile = self.profile_manager.get_profile(request.mode)
            prompt = self.format_prompt(request, profile)
            response = self.invoke(prompt, request, profile)
            result = self.parse_response(response, request)

            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.info(f"Completed request {request_id} in {elapsed_ms}ms")
            return result

        except Exception as e:
            elapsed_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Error in request {request_id} after {elapsed_ms}ms: {str(e)}")
            raise

    def close(self):
        """Close and clean up resources"""
        if hasattr(self, 'client') and self.client:
            self.client.close()
