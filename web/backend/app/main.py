"""FastAPI application for remote policy file editing.

Provides REST API endpoints wrapping the polfile package for:
- Listing and looking up entries of registry.pol files
- Setting and removing entries (with gpt.ini version bumps)
- Incrementing gpt.ini version counters

Every path is resolved under ``POLFILE_POLICY_ROOT``.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from polfile import __version__
from web.backend.app.routers import entries

app = FastAPI(
    title="polfile API",
    description=(
        "REST API for editing registry.pol policy files and keeping "
        "their gpt.ini version counters in step."
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
app.include_router(entries.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "polfile API",
        "version": __version__,
        "description": "registry.pol policy file editor REST API",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
