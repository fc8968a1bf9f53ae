"""
Main FastAPI application entry point.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from brokerage.db import initialize_database
from brokerage.routers import products, quotes, profiles, policies
from brokerage.middleware import PerformanceMiddleware, RequestContextMiddleware
from brokerage.cache import config_cache
from brokerage.services.products import get_rules
import logging

# Configure logging
logger = logging.getLogger("brokerage")

app = FastAPI(
    title="Brokerage Policy API",
    description="Premium calculation, eligibility rules and policy lifecycle for an insurance brokerage",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add performance middleware (innermost - executes first)
app.add_middleware(PerformanceMiddleware)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

# Add CORS middleware (outermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Initialize database and warm up caches on startup."""
    logger.info("Starting Brokerage Policy API...")

    initialize_database()
    logger.info("Database initialized")

    # Warm up config cache and build the rule table
    config_cache.get_seed_data()
    rules = get_rules()
    logger.info(f"Config cache warmed up: {len(rules)} product rules, "
                f"{len(config_cache.get_seed_profiles())} seed profiles")

    logger.info("Startup complete")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Brokerage Policy API", "status": "healthy"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# Include all routers
app.include_router(products.router, prefix="/v1", tags=["products"])
app.include_router(quotes.router, prefix="/v1", tags=["quotes"])
app.include_router(profiles.router, prefix="/v1", tags=["profiles"])
app.include_router(policies.router, prefix="/v1", tags=["policies"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
