import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .catalog import load_catalog
from .db import Base, engine
from .logging_config import configure_logging
from .settings import settings
from .routers import health
from .routers import auth
from .routers import stealth_assessment
from .routers import razia_conversation
from .routers import feature_unlock
from .routers import premium_gate
from .routers import quality_assurance
from .routers import progress_sync
from .routers import learning_analytics

logger = logging.getLogger(__name__)

app = FastAPI(title="Hidrazy API")
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_allow_origins,
	allow_methods=["*"],
	allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(stealth_assessment.router)
app.include_router(razia_conversation.router)
app.include_router(feature_unlock.router)
app.include_router(premium_gate.router)
app.include_router(quality_assurance.router)
app.include_router(progress_sync.router)
app.include_router(learning_analytics.router)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
	return JSONResponse(
		status_code=exc.status_code,
		content={"error": exc.detail, "success": False},
		headers=getattr(exc, "headers", None),
	)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
	fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
	return JSONResponse(status_code=400, content={"error": f"Invalid or missing fields: {fields}", "success": False})


@app.on_event("startup")
async def startup_event():
	configure_logging(settings.log_level)
	# Supabase owns the production schema; this only matters for local sqlite
	Base.metadata.create_all(bind=engine)
	app.state.catalog = load_catalog(
		settings.feature_catalog_path,
		free_daily_conversation_limit=settings.free_daily_conversation_limit,
	)
	logger.info("Hidrazy API started (llm_configured=%s)", bool(settings.openai_api_key))
