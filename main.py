import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from config import settings, build_agent_config
from database import init_db, ValidationAttemptRecorder
from errors import NetworkError, ValidationError
from events import log_event
from license_agent import LicenseAgent, __version__
from models import (
    ValidateRequest,
    LicenseValidationResponse,
    LicenseCheckResponse,
    CacheClearResponse,
    HealthCheckResponse,
)

logging.basicConfig(level=settings.LOG_LEVEL)


def create_agent() -> LicenseAgent:
    """Wire an agent from settings, with the attempt recorder if enabled."""
    config = build_agent_config(settings)
    sinks = [log_event]
    if settings.RECORD_VALIDATION_ATTEMPTS:
        sinks.append(ValidationAttemptRecorder(
            init_db(settings.DATABASE_URL),
            hardware_id=config.static_metadata.get("hardware_id"),
        ))
    return LicenseAgent(config, event_sinks=sinks)


@asynccontextmanager
async def lifespan(app: FastAPI):
    agent = create_agent()
    agent.start_periodic_validation(timedelta(minutes=settings.VALIDATION_INTERVAL_MINUTES))
    app.state.agent = agent
    try:
        yield
    finally:
        agent.stop()


app = FastAPI(
    title="License Agent Service",
    description="Local license validation with caching and offline grace period",
    version=__version__,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_agent(request: Request) -> LicenseAgent:
    return request.app.state.agent


# API Endpoints
@app.post("/api/license/validate", response_model=LicenseValidationResponse)
async def validate_license(
    request: ValidateRequest = ValidateRequest(),
    agent: LicenseAgent = Depends(get_agent)
):
    """
    Validate the license.

    Answers from cache while it is fresh. If the license server can't be
    reached, the last known answer is used within the grace period.
    """
    result = await agent.validate(request.metadata)
    return LicenseValidationResponse.from_result(result)


@app.post("/api/license/force-validate", response_model=LicenseValidationResponse)
async def force_validate_license(
    request: ValidateRequest = ValidateRequest(),
    agent: LicenseAgent = Depends(get_agent)
):
    """Validate against the license server, ignoring cache freshness."""
    result = await agent.force_validate(request.metadata)
    return LicenseValidationResponse.from_result(result)


@app.post("/api/license/check", response_model=LicenseCheckResponse)
async def check_license(
    request: ValidateRequest = ValidateRequest(),
    agent: LicenseAgent = Depends(get_agent)
):
    """
    Strict check for gateways.

    403 when the license is invalid, 503 when the license server is
    unreachable and no grace period applies.
    """
    try:
        await agent.check_or_throw(request.metadata)
    except ValidationError as e:
        raise HTTPException(status_code=403, detail={"type": "ValidationError", "message": str(e), "reason": e.reason})
    except NetworkError as e:
        raise HTTPException(status_code=503, detail={"type": "NetworkError", "message": str(e)})

    return {"valid": True}


@app.delete("/api/license/cache", response_model=CacheClearResponse)
async def clear_cache(agent: LicenseAgent = Depends(get_agent)):
    agent.clear_cache()
    return {"success": True, "message": "License cache cleared"}


@app.get("/health", response_model=HealthCheckResponse)
async def health_check(agent: LicenseAgent = Depends(get_agent)):
    return {
        "status": "healthy",
        "service": "license-agent",
        "version": __version__,
        "productName": agent.config.product_name,
        "hardwareId": agent.config.static_metadata.get("hardware_id"),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
