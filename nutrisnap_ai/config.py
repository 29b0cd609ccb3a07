# nutrisnap_ai/config.py
import os
from enum import Enum
from dotenv import load_dotenv

load_dotenv()

class ModelProvider(str, Enum):
    CLAUDE = "anthropic"
    LLAMA = "meta"

class ConfigurationError(Exception):
    """Base exception for configuration errors"""
    pass

class ModelConfig:
    def __init__(self):
        self.model_provider = os.getenv("MODEL_PROVIDER", ModelProvider.CLAUDE)
        self.model_id = os.getenv("MODEL_ID", "anthropic.claude-3-5-sonnet-20240620-v1:0")
        self.region = os.getenv("AWS_REGION", "us-east-1")
        self.profiles_file = os.getenv("ANALYSIS_PROFILES_FILE")

        try:
            self.max_tokens = int(os.getenv("MAX_TOKENS", 1000))
        except ValueError:
            raise ValueError("MAX_TOKENS must be a valid integer")

        try:
            self.temperature = float(os.getenv("TEMPERATURE", 0.3))
        except ValueError:
            raise ValueError("TEMPERATURE must be a valid float")

        try:
            self.request_timeout = float(os.getenv("REQUEST_TIMEOUT", 60))
        except ValueError:
            raise ValueError("REQUEST_TIMEOUT must be a valid number of seconds")

        self._validate_config()

    def _validate_config(self):
        """Validate configuration parameters."""
        if self.max_tokens <= 0:
            raise ConfigurationError("MAX_TOKENS must be greater than 0")

        if self.temperature < 0 or self.temperature > 1:
            raise ConfigurationError("TEMPERATURE must be between 0 and 1")

        if self.request_timeout <= 0:
            raise ConfigurationError("REQUEST_TIMEOUT must be greater than 0")

config = ModelConfig()
