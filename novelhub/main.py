"""
Main FastAPI application for the novelhub budget/unlock API.
Serves health, contribution/gift/rental flows, admin corrections and metrics.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from novelhub.core.config import settings
from novelhub.core.exceptions import NovelhubError
from novelhub.core.logging import configure_logging
from novelhub.api.routes import admin, health, modules, novels, wallets
from novelhub.utils.metrics import router as metrics_router


configure_logging()

app = FastAPI(
    title="Novelhub Budget API",
    description="Novel budget ledger and sequential content auto-unlock",
    version="1.0.0",
)

# CORS
origins = settings.cors_origins_list
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NovelhubError)
async def novelhub_error_handler(request: Request, exc: NovelhubError) -> JSONResponse:
    """Domain errors raised outside run_flow (e.g. in dependencies)."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(novels.router)
app.include_router(modules.router)
app.include_router(wallets.router)
app.include_router(admin.router)
app.include_router(metrics_router)
