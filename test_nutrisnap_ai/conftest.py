import pytest
from unittest.mock import MagicMock, patch
import os
import json
from io import BytesIO
from nutrisnap_ai.client import BedrockClient
from nutrisnap_ai.config import ModelConfig, ModelProvider

@pytest.fixture
def mock_bedrock_client():
    """Returns a mocked BedrockClient instance."""
    client = MagicMock(spec=BedrockClient)
    return client

@pytest.fixture
def test_config():
    """Returns a test configuration."""
    test_config = ModelConfig()
    test_config.model_provider = ModelProvider.CLAUDE
    test_config.model_id = "anthropic.claude-3-5-sonnet-20240620-v1:0"
    test_config.region = "us-east-1"
    test_config.max_tokens = 1000
    test_config.temperature = 0.3
    test_config.request_timeout = 30
    test_config.profiles_file = None
    return test_config

@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for testing."""
    credentials = {
        "AWS_ACCESS_KEY_ID": "testing",
        "AWS_SECRET_ACCESS_KEY": "testing",
        "AWS_SECURITY_TOKEN": "testing",
        "AWS_SESSION_TOKEN": "testing",
        "AWS_DEFAULT_REGION": "us-east-1",
    }
    with patch.dict(os.environ, credentials):
        yield

@pytest.fixture
def boto3_bedrock_client(aws_credentials):
    """Mocked boto3 bedrock client."""
    with patch("boto3.client") as mock_client:
        client = MagicMock()
        mock_client.return_value = client
        yield client

@pytest.fixture
def claude_response():
    """Builds a boto3 invoke_model response carrying a Claude messages reply."""
    def _build(text, status_code=200):
        body = {
            "content": [{"type": "text", "text": text}],
            "stop_reason": "end_turn"
        }
        return {
            "ResponseMetadata": {"HTTPStatusCode": status_code},
            "body": BytesIO(json.dumps(body).encode())
        }
    return _build

@pytest.fixture
def jpeg_data_uri():
    """A data URI the image processor passes through unchanged."""
    return "data:image/jpeg;base64,/9j/4AAQSkZJRg=="

@pytest.fixture
def previous_analysis():
    """A report as returned by an earlier analysis."""
    return {
        "nazovJedla": "Vyprážané kuracie prsia",
        "kalorie": "650",
        "velkostPorcie": "Jedna porcia s prílohou",
        "makronutrienty": {
            "bielkoviny": "45",
            "sacharidy": "40",
            "tuky": "32",
            "vlaknina": "3"
        },
        "vitaminy": {
            "vitaminC": "5%",
            "vitaminA": "4%"
        },
        "mineraly": {
            "vápnik": "6%",
            "železo": "10%"
        },
        "zdravotneSkore": "5",
        "zdravotneRady": [
            "Vyprážanie zvyšuje obsah tukov",
            "Pridaj zeleninovú prílohu",
            "Pi dostatok vody"
        ]
    }

@pytest.fixture
def grilled_report(previous_analysis):
    """A complete report the model might return after a correction."""
    report = json.loads(json.dumps(previous_analysis))
    report["nazovJedla"] = "Grilované kuracie prsia"
    report["kalorie"] = "420"
    report["makronutrienty"]["tuky"] = "12"
    report["zdravotneSkore"] = "8"
    return report
