"""
Główny moduł aplikacji FastAPI do podziału rachunków za prąd.
Rejestruje routery API.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware

from app.core.database import init_db
from app.config import settings
from app.api.routes.billing import router as billing_router
from app.api.routes.history import router as history_router
from app.api.routes.settings import router as settings_router
from app.api.routes.sync import router as sync_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cykl życia aplikacji - inicjalizacja bazy danych."""
    init_db()
    yield


app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan
)

# CORS dla frontendu
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.include_router(billing_router)  # /api/billing/*
app.include_router(history_router)  # /api/history/*
app.include_router(settings_router)  # /api/settings/*
app.include_router(sync_router)  # /api/sync/*


@app.get("/favicon.ico")
def favicon():
    """Zwraca 204 No Content, aby uniknąć błędów 404."""
    return Response(status_code=204)


@app.get("/")
def root():
    """Informacje o API."""
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
