"""FastAPI application for the dappy identity registries.

Provides REST API endpoints wrapping the dappy Python package for:
- User verification tokens (issue, revoke, reissue, extend, queries)
- Manager administration
- Social connection and filesystem change pointers
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dappy import __version__
from dappy.errors import RegistryError
from web.backend.app.ledger import status_for
from web.backend.app.routers import pointers, verification

app = FastAPI(
    title="dappy API",
    description=(
        "REST API for the dappy identity registries. "
        "Provides endpoints for soulbound user verification tokens "
        "and account content pointers."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(verification.router)
app.include_router(pointers.router)


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": exc.message, "error": type(exc).__name__},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "dappy API",
        "version": __version__,
        "description": "Identity registries REST API",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
