# Food photo analysis API
import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from nutrisnap_ai.client import UpstreamCallError
from nutrisnap_ai.config import ConfigurationError
from nutrisnap_ai.schemas import AnalysisRequest
from nutrisnap_ai.usecases.food_analyser import FoodAnalyser
from nutrisnap_ai.utils.validations import ClientInputError, validate_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Food Analysis"])

ALLOWED_METHODS = ["POST"]


@lru_cache(maxsize=1)
def get_analyser() -> FoodAnalyser:
    return FoodAnalyser()


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def client_error(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"success": False, "error": message})


def server_error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": message, "timestamp": utc_timestamp()},
    )


def _analyse(analyser: FoodAnalyser, request: AnalysisRequest) -> Dict[str, Any]:
    analyser.ensure_ready()
    return analyser.run(request)


@router.options("/analyze")
async def preflight():
    return Response(status_code=200)


@router.api_route("/analyze", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"])
async def method_not_allowed():
    return JSONResponse(
        status_code=405,
        content={"error": "Method not allowed", "allowedMethods": ALLOWED_METHODS},
        headers={"Allow": ", ".join(ALLOWED_METHODS)},
    )


@router.post("/analyze")
async def analyze_food(payload: Optional[Dict[str, Any]] = Body(None), analyser: FoodAnalyser = Depends(get_analyser)):
    """
    Analyze a food photo, optionally correcting an earlier analysis.
    """
    logger.info("Request received: POST")

    try:
        request = validate_payload(payload)
    except ClientInputError as e:
        logger.info(f"Rejected request: {e}")
        return client_error(str(e))

    try:
        report = await run_in_threadpool(_analyse, analyser, request)
    except ClientInputError as e:
        logger.info(f"Rejected request: {e}")
        return client_error(str(e))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return server_error(str(e))
    except UpstreamCallError as e:
        logger.error(f"Upstream error: {e}")
        return server_error(str(e))
    except Exception as e:
        logger.exception("Handler error")
        return server_error(str(e))

    return JSONResponse(
        status_code=200,
        content={"success": True, "analysis": json.dumps(report, ensure_ascii=False, indent=2)},
    )
