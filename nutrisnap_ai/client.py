import boto3
import json
import logging
import time
from typing import Dict, Any, Optional
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
from prometheus_client import CollectorRegistry, Counter, Histogram, Gauge
from .config import config, ModelProvider, ConfigurationError
from .utils.image_utils import InlineImage
from .utils.token_utils import estimate_tokens
from .utils.validations import generate_request_id


logger = logging.getLogger(__name__)

# Create a module-level registry
registry = CollectorRegistry()

# Register metrics on this registry
REQUEST_COUNTER = Counter('nutrisnap_bedrock_requests_total', 'Total number of requests to Bedrock API', ['model', 'status'], registry=registry)
RESPONSE_TIME = Histogram('nutrisnap_bedrock_response_time_seconds', 'Response time for Bedrock API calls', ['model'], registry=registry)
TOKEN_COUNTER = Counter('nutrisnap_bedrock_tokens_total', 'Total tokens consumed', ['model', 'type'], registry=registry)
ACTIVE_REQUESTS = Gauge('nutrisnap_bedrock_active_requests', 'Number of active requests', registry=registry)

class UpstreamCallError(Exception):
    """The completion service could not be reached or answered with an error"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

class UpstreamRateLimitError(UpstreamCallError):
    """Errors related to rate limiting"""
    pass

class UpstreamEnvelopeError(UpstreamCallError):
    """Success status, but the reply text is missing from the response body"""
    pass

class BedrockClient:
    """Client for the multimodal completion models hosted on AWS Bedrock"""

    def __init__(self, custom_config=None):
        """
        Initialize the Bedrock client

        Args:
            custom_config: Optional custom configuration to override defaults
        """
        self.config = custom_config or config
        # A single attempt, bounded by explicit timeouts; failures are reported, never retried
        boto_config = BotoConfig(
            connect_timeout=self.config.request_timeout,
            read_timeout=self.config.request_timeout,
            retries={"max_attempts": 1, "mode": "standard"},
        )
        self.client = boto3.client("bedrock-runtime", region_name=self.config.region, config=boto_config)
        self._credentials = None
        self._credentials_checked = False
        logger.info(f"Initialized BedrockClient with model {self.config.model_id}")

    def ensure_credentials(self) -> None:
        """
        Check that boto3 can resolve AWS credentials for the upstream call.
        The lookup runs once per client and its outcome is reused.

        Raises:
            ConfigurationError: If no credentials are available
        """
        if not self._credentials_checked:
            session = boto3.Session(region_name=self.config.region)
            self._credentials = session.get_credentials()
            self._credentials_checked = True
        if self._credentials is None:
            logger.error("No AWS credentials found")
            raise ConfigurationError("Server configuration error - no AWS credentials")

    def close(self):
        """Close connections and clean up resources"""
        logger.info(f"Closing BedrockClient connection for model {self.config.model_id}")
        if hasattr(self.client, "close"):
            self.client.close()

    def _format_prompt(self, prompt: str, system: str = "", image: Optional[InlineImage] = None,
                       max_tokens: Optional[int] = None, temperature: Optional[float] = None) -> Dict[str, Any]:
        max_tokens = max_tokens or self.config.max_tokens
        temperature = self.config.temperature if temperature is None else temperature

        if self.config.model_provider == ModelProvider.CLAUDE:
            content = []
            if image:
                content.append({
                    "type": "image",
                    "source": {"type": "base64", "media_type": image.media_type, "data": image.data}
                })
            content.append({"type": "text", "text": prompt})
            body = {
                "messages": [{"role": "user", "content": content}],
                "max_tokens": max_tokens,
                "temperature": temperature,
                "anthropic_version": "bedrock-2023-05-31"
            }
            if system:
                body["system"] = system
            return body

        elif self.config.model_provider == ModelProvider.LLAMA:
            content = []
            if image:
                content.append({"type": "image_url", "image_url": {"url": image.to_data_uri()}})
            content.append({"type": "text", "text": prompt})
            messages = [{"role": "user", "content": content}]
            if system:
                messages.insert(0, {"role": "system", "content": system})
            return {
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "top_p": 0.9
            }

        raise ConfigurationError(f"Unsupported provider: {self.config.model_provider}")

    def invoke(self, prompt: str, system: str = "", image: Optional[InlineImage] = None,
               max_tokens: Optional[int] = None, temperature: Optional[float] = None) -> Dict[str, Any]:
        """
        Invoke the model once with an instruction and an optional image

        Args:
            prompt: The user instruction text
            system: Optional system instruction
            image: Optional inline image sent along with the instruction
            max_tokens: Reply length bound, defaults to the configured value
            temperature: Sampling temperature, defaults to the configured value

        Returns:
            {"text": <reply text>}

        Raises:
            UpstreamCallError: On a non-success status or a network failure
            UpstreamEnvelopeError: When the response carries no reply text
            ConfigurationError: When the provider is unsupported or credentials are missing
        """
        request_id = generate_request_id()
        model = self.config.model_id
        ACTIVE_REQUESTS.inc()

        try:
            body = self._format_prompt(prompt, system=system, image=image,
                                       max_tokens=max_tokens, temperature=temperature)
            logger.debug(f"[{request_id}] Invoking model with prompt length: {len(prompt)}")

            # Track token usage (approximate)
            TOKEN_COUNTER.labels(model=model, type="input").inc(estimate_tokens(system + " " + prompt))

            start_time = time.time()
            response = self.client.invoke_model(
                modelId=model,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(body)
            )
            RESPONSE_TIME.labels(model=model).observe(time.time() - start_time)

            status_code = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
            if status_code == 429:
                logger.warning(f"[{request_id}] Rate limited by AWS Bedrock")
                raise UpstreamRateLimitError("Bedrock API error: 429 - rate limit exceeded", status_code=429)
            if status_code != 200:
                logger.warning(f"[{request_id}] Non-200 status code: {status_code}")
                raise UpstreamCallError(f"Bedrock API error: {status_code}", status_code=status_code)

            try:
                response_body = json.loads(response["body"].read())
            except (KeyError, ValueError) as e:
                raise UpstreamEnvelopeError(f"Invalid Bedrock response structure: {str(e)}", status_code=status_code)
            logger.debug(f"[{request_id}] Received response of size: {len(str(response_body))}")

            parsed_response = self._parse_response(response_body)
            TOKEN_COUNTER.labels(model=model, type="output").inc(estimate_tokens(parsed_response["text"]))
            REQUEST_COUNTER.labels(model=model, status="success").inc()
            return parsed_response

        except (UpstreamCallError, ConfigurationError):
            REQUEST_COUNTER.labels(model=model, status="error").inc()
            raise
        except NoCredentialsError as e:
            logger.error(f"[{request_id}] No AWS credentials: {str(e)}")
            REQUEST_COUNTER.labels(model=model, status="error").inc()
            raise ConfigurationError("Server configuration error - no AWS credentials")
        except ClientError as e:
            error = e.response.get("Error", {})
            status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            logger.error(f"[{request_id}] Bedrock error {status_code}: {error.get('Message', str(e))}")
            REQUEST_COUNTER.labels(model=model, status="error").inc()
            message = f"Bedrock API error: {status_code} - {error.get('Message', str(e))}"
            if status_code == 429 or error.get("Code") == "ThrottlingException":
                raise UpstreamRateLimitError(message, status_code=status_code)
            raise UpstreamCallError(message, status_code=status_code)
        except BotoCoreError as e:
            logger.error(f"[{request_id}] Boto3 error: {str(e)}")
            REQUEST_COUNTER.labels(model=model, status="error").inc()
            raise UpstreamCallError(f"AWS service error: {str(e)}")
        except Exception as e:
            logger.error(f"[{request_id}] Unexpected error: {str(e)}")
            REQUEST_COUNTER.labels(model=model, status="error").inc()
            raise UpstreamCallError(f"Failed to invoke model: {str(e)}")
        finally:
            ACTIVE_REQUESTS.dec()

    def _parse_response(self, response: Dict[str, Any]) -> Dict[str, Any]:
        """
        Extract the reply text based on model provider

        Args:
            response: Decoded response body

        Returns:
            {"text": <reply text>}

        Raises:
            UpstreamEnvelopeError: If the reply text is missing or empty
        """
        text = None
        if not isinstance(response, dict):
            raise UpstreamEnvelopeError("Invalid Bedrock response structure")

        if self.config.model_provider == ModelProvider.CLAUDE:
            content = response.get("content")
            if isinstance(content, list):
                text = "".join(c.get("text", "") for c in content if isinstance(c, dict) and c.get("type") == "text")
            else:
                logger.error(f"Unexpected 'content' format: {type(content)} - {content}")
        elif self.config.model_provider == ModelProvider.LLAMA:
            text = response.get("generation")

        if not isinstance(text, str) or not text.strip():
            logger.warning(f"Model returned no reply text: {response}")
            raise UpstreamEnvelopeError("Invalid Bedrock response structure")
        return {"text": text}
