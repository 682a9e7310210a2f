import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import engine, Base
from app.services.embedding_service import EmbeddingService
from app.services.llm_service import LLMService
from app import models  # noqa: F401  registers tables on Base.metadata

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# Set CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed requests are 400, not the framework default 422
    logger.info(f"Rejected malformed request to {request.url.path}")
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

@app.on_event("startup")
async def startup_event():
    """
    Create tables (when enabled) and build the service handles shared by
    every request.
    """
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
    app.state.llm_service = LLMService()
    app.state.embedding_service = EmbeddingService()
    logger.info(
        f"Services ready (completion={app.state.llm_service.model}, "
        f"embedding={app.state.embedding_service.model})"
    )

@app.on_event("shutdown")
async def shutdown_event():
    for name in ("llm_service", "embedding_service"):
        service = getattr(app.state, name, None)
        if service is not None:
            await service.close()

@app.get("/")
async def root():
    return {"message": "Document Intelligence API is running"}
