"""Main FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from goldfish.api import sim
from goldfish.core.logging_config import setup_logging
from goldfish.core.settings import get_settings
from goldfish.middleware.logging_middleware import RequestLoggingMiddleware

settings = get_settings()
setup_logging(log_level=settings.log_level, enable_file=settings.log_to_file)

app = FastAPI(
    title="Goldfish API",
    description="Monte Carlo gold-fish simulator for trading card game decks",
    version="0.1.0",
)

# CORS middleware for local frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],  # Vite default port
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(sim.router, prefix="/sim", tags=["simulation"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Goldfish API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
