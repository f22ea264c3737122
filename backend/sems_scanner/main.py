"""
Point d'entrée de l'API du store distant (système de référence des présences).
Démarrage : uvicorn sems_scanner.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import sems_scanner.models  # noqa: F401 : enregistre tous les modèles dans Base.metadata avant les routers
from sems_scanner.routers import scanner_resources, scans
from sems_scanner.routers.responses import error_response

logger = logging.getLogger(__name__)

app = FastAPI(
    title="SEMS Scanner API",
    description="Store distant des présences aux événements (scanner offline-first)",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# CORS : autorise tous les ports localhost en développement (à restreindre en production).
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],
    allow_origin_regex=r"https?://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)


app.include_router(scanner_resources.router)
app.include_router(scans.router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Erreurs métier (404, 400...) renvoyées dans l'enveloppe {success: false, error}."""
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Requête invalide.") if errors else "Requête invalide."
    return error_response(422, message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées pour garantir que la réponse 500
    passe bien par CORSMiddleware et garde le format d'enveloppe attendu par l'appareil.
    """
    logger.error("Exception non gérée : %s", exc, exc_info=True)
    return error_response(500, "Une erreur interne est survenue.")


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return {"status": "ok", "service": "SEMS Scanner API", "version": "0.1.0"}
