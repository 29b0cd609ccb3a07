import pytest
import json
from io import BytesIO
from unittest.mock import patch, MagicMock
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from nutrisnap_ai.client import (
    BedrockClient,
    UpstreamCallError,
    UpstreamEnvelopeError,
    UpstreamRateLimitError,
)
from nutrisnap_ai.config import ModelProvider, ConfigurationError
from nutrisnap_ai.utils.image_utils import InlineImage

IMAGE = InlineImage(media_type="image/jpeg", data="/9j/4AAQSkZJRg==")

def client_error(code, status_code, message="boom"):
    return ClientError(
        {"Error": {"Code": code, "Message": message}, "ResponseMetadata": {"HTTPStatusCode": status_code}},
        "InvokeModel",
    )

class TestBedrockClient:
    def test_init_with_custom_config(self, test_config):
        """Test client initialization with a bounded, single-attempt boto config."""
        with patch("boto3.client") as mock_boto3:
            client = BedrockClient(custom_config=test_config)
            assert client.config == test_config
            args, kwargs = mock_boto3.call_args
            assert args == ("bedrock-runtime",)
            assert kwargs["region_name"] == test_config.region
            assert kwargs["config"].read_timeout == test_config.request_timeout
            assert kwargs["config"].connect_timeout == test_config.request_timeout
            assert kwargs["config"].retries["max_attempts"] == 1

    def test_format_prompt_claude(self, boto3_bedrock_client, test_config):
        """Test prompt formatting for Claude models."""
        client = BedrockClient(custom_config=test_config)

        formatted = client._format_prompt("Analyze", system="JSON only", image=IMAGE, max_tokens=500, temperature=0.1)

        assert formatted["anthropic_version"] == "bedrock-2023-05-31"
        assert formatted["system"] == "JSON only"
        assert formatted["max_tokens"] == 500
        assert formatted["temperature"] == 0.1
        content = formatted["messages"][0]["content"]
        assert content[0] == {
            "type": "image",
            "source": {"type": "base64", "media_type": "image/jpeg", "data": IMAGE.data}
        }
        assert content[1] == {"type": "text", "text": "Analyze"}

    def test_format_prompt_claude_defaults(self, boto3_bedrock_client, test_config):
        client = BedrockClient(custom_config=test_config)

        formatted = client._format_prompt("Hello, world!")

        assert "system" not in formatted
        assert formatted["max_tokens"] == test_config.max_tokens
        assert formatted["temperature"] == test_config.temperature
        assert formatted["messages"][0]["content"] == [{"type": "text", "text": "Hello, world!"}]

    def test_format_prompt_llama(self, boto3_bedrock_client, test_config):
        """Test prompt formatting for Llama vision models."""
        test_config.model_provider = ModelProvider.LLAMA
        client = BedrockClient(custom_config=test_config)

        formatted = client._format_prompt("Analyze", system="JSON only", image=IMAGE)

        assert formatted["messages"][0] == {"role": "system", "content": "JSON only"}
        user_content = formatted["messages"][1]["content"]
        assert user_content[0]["image_url"]["url"] == "data:image/jpeg;base64,/9j/4AAQSkZJRg=="
        assert user_content[1]["text"] == "Analyze"
        assert formatted["max_tokens"] == test_config.max_tokens

    def test_format_prompt_unsupported_provider(self, boto3_bedrock_client, test_config):
        """Test prompt formatting for unsupported provider."""
        test_config.model_provider = "unsupported"
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(ConfigurationError):
            client._format_prompt("Hello, world!")

    def test_invoke_successful(self, boto3_bedrock_client, test_config, claude_response):
        """Test successful model invocation."""
        boto3_bedrock_client.invoke_model.return_value = claude_response('{"nazovJedla": "Guláš"}')
        client = BedrockClient(custom_config=test_config)

        result = client.invoke("Test prompt", system="JSON only", image=IMAGE)

        assert result == {"text": '{"nazovJedla": "Guláš"}'}
        boto3_bedrock_client.invoke_model.assert_called_once()
        kwargs = boto3_bedrock_client.invoke_model.call_args.kwargs
        assert kwargs["modelId"] == test_config.model_id
        assert json.loads(kwargs["body"])["system"] == "JSON only"

    def test_invoke_non_success_status(self, boto3_bedrock_client, test_config, claude_response):
        boto3_bedrock_client.invoke_model.return_value = claude_response("ignored", status_code=500)
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(UpstreamCallError) as excinfo:
            client.invoke("Test prompt")
        assert excinfo.value.status_code == 500
        assert not isinstance(excinfo.value, UpstreamEnvelopeError)

    def test_invoke_rate_limited_status(self, boto3_bedrock_client, test_config, claude_response):
        boto3_bedrock_client.invoke_model.return_value = claude_response("ignored", status_code=429)
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(UpstreamRateLimitError):
            client.invoke("Test prompt")

    def test_invoke_client_error(self, boto3_bedrock_client, test_config):
        boto3_bedrock_client.invoke_model.side_effect = client_error("ValidationException", 400, "bad image")
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(UpstreamCallError) as excinfo:
            client.invoke("Test prompt")
        assert excinfo.value.status_code == 400
        assert "bad image" in str(excinfo.value)

    def test_invoke_throttling(self, boto3_bedrock_client, test_config):
        boto3_bedrock_client.invoke_model.side_effect = client_error("ThrottlingException", 400)
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(UpstreamRateLimitError):
            client.invoke("Test prompt")

    def test_invoke_network_error(self, boto3_bedrock_client, test_config):
        boto3_bedrock_client.invoke_model.side_effect = EndpointConnectionError(endpoint_url="https://bedrock.local")
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(UpstreamCallError):
            client.invoke("Test prompt")

    def test_invoke_unexpected_error(self, boto3_bedrock_client, test_config):
        """Test error handling during invocation."""
        boto3_bedrock_client.invoke_model.side_effect = Exception("API Error")
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(UpstreamCallError):
            client.invoke("Test prompt")

    def test_invoke_without_credentials(self, boto3_bedrock_client, test_config):
        boto3_bedrock_client.invoke_model.side_effect = NoCredentialsError()
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(ConfigurationError):
            client.invoke("Test prompt")

    def test_invoke_body_not_json(self, boto3_bedrock_client, test_config):
        boto3_bedrock_client.invoke_model.return_value = {
            "ResponseMetadata": {"HTTPStatusCode": 200},
            "body": BytesIO(b"<html>gateway</html>")
        }
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(UpstreamEnvelopeError):
            client.invoke("Test prompt")

    def test_invoke_missing_content(self, boto3_bedrock_client, test_config):
        boto3_bedrock_client.invoke_model.return_value = {
            "ResponseMetadata": {"HTTPStatusCode": 200},
            "body": BytesIO(json.dumps({"stop_reason": "end_turn"}).encode())
        }
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(UpstreamEnvelopeError):
            client.invoke("Test prompt")

    def test_parse_response_claude(self, boto3_bedrock_client, test_config):
        """Test response parsing for Claude messages."""
        client = BedrockClient(custom_config=test_config)

        result = client._parse_response({
            "content": [
                {"type": "text", "text": "Sample "},
                {"type": "tool_use", "id": "x"},
                {"type": "text", "text": "reply"}
            ]
        })
        assert result == {"text": "Sample reply"}

    def test_parse_response_empty_text(self, boto3_bedrock_client, test_config):
        client = BedrockClient(custom_config=test_config)

        with pytest.raises(UpstreamEnvelopeError):
            client._parse_response({"content": [{"type": "text", "text": "  "}]})

    def test_parse_response_llama(self, boto3_bedrock_client, test_config):
        """Test response parsing for Llama."""
        test_config.model_provider = ModelProvider.LLAMA
        client = BedrockClient(custom_config=test_config)

        result = client._parse_response({"generation": "Sample response from Llama model"})
        assert result == {"text": "Sample response from Llama model"}

        with pytest.raises(UpstreamEnvelopeError):
            client._parse_response({"stop_reason": "stop"})

    def test_ensure_credentials(self, boto3_bedrock_client, test_config):
        with patch("boto3.Session") as mock_session:
            mock_session.return_value.get_credentials.return_value = MagicMock()
            BedrockClient(custom_config=test_config).ensure_credentials()

            mock_session.return_value.get_credentials.return_value = None
            with pytest.raises(ConfigurationError):
                BedrockClient(custom_config=test_config).ensure_credentials()

    def test_ensure_credentials_resolves_once(self, boto3_bedrock_client, test_config):
        client = BedrockClient(custom_config=test_config)

        with patch("boto3.Session") as mock_session:
            mock_session.return_value.get_credentials.return_value = None
            for _ in range(3):
                with pytest.raises(ConfigurationError):
                    client.ensure_credentials()

        mock_session.assert_called_once()
        mock_session.return_value.get_credentials.assert_called_once()
