from fastapi import APIRouter
from app.api.v1.endpoints import chat, documents, ingest

api_router = APIRouter()
api_router.include_router(ingest.router, tags=["ingest"])
api_router.include_router(documents.router, tags=["documents"])
api_router.include_router(chat.router, tags=["chat"])
