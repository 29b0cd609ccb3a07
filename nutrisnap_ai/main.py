import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from nutrisnap_ai.client import registry
from nutrisnap_ai.config import ConfigurationError
from nutrisnap_ai.routers import analyze

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("NutriSnap AI server starting")
    yield
    if analyze.get_analyser.cache_info().currsize:
        analyze.get_analyser().close()
    logger.info("NutriSnap AI server stopped")


app = FastAPI(
    title="NutriSnap AI Server",
    description="Bedrock based food photo nutrition analysis API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    # Preflights asking for any header are accepted
    allow_headers=["*"],
)

app.include_router(analyze.router)


@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Invalid request body: {exc.errors()}")
    return analyze.client_error("Invalid request body")


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {exc}")
    return analyze.server_error(str(exc))


@app.get("/health")
def health_check():
    return {"status": "ok", "msg": "NutriSnap AI Ready"}


@app.get("/metrics")
def metrics():
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 8000)))
