"""
Monitoring and health check API routes
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from config import get_logger
from database.db_postgres import Database
from exceptions import DatabaseError
from server.dependencies import get_db
from server.metrics import get_metrics_text, metrics

logger = get_logger(__name__).bind(component="monitoring")

router = APIRouter()

API_VERSION = "1.0.0"


@router.get("/")
async def root():
    """API status and info"""
    return {
        "service": "evote API",
        "status": "running",
        "version": API_VERSION,
        "endpoints": {
            "elections": "/api/v1/elections",
            "candidates": "/api/v1/candidates/election/{electionId}",
            "vote": "POST /api/v1/voters/election/{electionId}",
            "results": "/api/v1/voters/election/{electionId}/results",
            "settings": "/api/v1/settings",
            "health": "/api/v1/health",
            "metrics": "/metrics",
        },
    }


@router.get("/api/v1/health")
async def health_check(db: Database = Depends(get_db)):
    """Health check with database connectivity and election counts"""
    health = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {},
    }
    try:
        stats = await db.get_stats()
        health["checks"]["database"] = {"status": "healthy", **stats}
    except (DatabaseError, OSError) as e:
        logger.error("health check failed", error=str(e))
        health["status"] = "unhealthy"
        health["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        return JSONResponse(status_code=503, content=health)
    return health


@router.get("/metrics")
async def prometheus_metrics(db: Database = Depends(get_db)):
    """Prometheus scrape endpoint"""
    try:
        stats = await db.get_stats()
        metrics.update_election_counts(stats["by_status"])
    except (DatabaseError, OSError) as e:
        # Scrape still succeeds with the counters we have
        logger.warning("could not refresh election gauges", error=str(e))
    return Response(content=get_metrics_text(), media_type="text/plain; version=0.0.4")
