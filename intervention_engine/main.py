"""
Intervention Engine - FastAPI Application

Main entry point for the A/B/C intervention escalation service.

Levels:
- A: In-the-moment coaching (30-90 seconds), logged selectively
- B: Structured reset conference (external workflow, counted here)
- C: Case management - context packet -> admin response -> re-entry -> monitoring -> closure
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import LOG_LEVEL
from .routers import interventions_router, level_a_router, cases_router, scheduler_router
from .database import init_db

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="ABC Intervention Engine",
    description="""
    A/B/C Behavioral Intervention Escalation Engine

    Classifies incidents into Level A / B / C, logs in-the-moment coaching and
    runs Level C cases through their lifecycle.

    ## Decision Tree
    1. **Safety incident**: Level C, nothing else evaluated
    2. **Escalation trigger**: Level B, or Level C after 2+ completed Level B attempts
    3. **Otherwise**: Level A

    ## Key Principles
    - Level A records are append-only
    - Case status only moves forward; closed cases are read-only
    - Review dates are computed, never scheduled - an external poller drives them
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(interventions_router)
app.include_router(level_a_router)
app.include_router(cases_router)
app.include_router(scheduler_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "ABC Intervention Engine",
        "version": "1.0.0",
        "docs": "/docs",
        "levels": {
            "A": "In-the-moment coaching",
            "B": "Structured reset conference",
            "C": "Case management",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m intervention_engine.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
