from pydantic import ValidationError
from nutrisnap_ai.schemas import AnalysisRequest, AnalyzePayload
import uuid
from typing import Any, Optional

class ClientInputError(Exception):
    """The request body is missing or unusable; no upstream call is made"""
    pass

def validate_payload(payload: Optional[Any]) -> AnalysisRequest:
    """Validate the request body and resolve it into an AnalysisRequest"""
    if payload is None:
        raise ClientInputError("No request body provided")

    if isinstance(payload, dict):
        try:
            payload = AnalyzePayload(**payload)
        except ValidationError as e:
            raise ClientInputError(f"Invalid request body: {e.errors()[0]['msg']}")

    if not payload.image or not payload.image.strip():
        raise ClientInputError("No image provided")

    return AnalysisRequest.from_payload(payload)

def generate_request_id() -> str:
    """Generate a unique request ID for tracing"""
    return f"req_{uuid.uuid4().hex[:8]}"
