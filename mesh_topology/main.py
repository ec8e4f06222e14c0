#!/usr/bin/env python3
"""
Mesh Topology Plane - Main Entry Point

Serves the declaration API:
- REST API for resolving and storing topologies
- Prometheus metrics, initialized from stored topologies
"""

import logging
import os

import uvicorn

from .api import shared_api_logic as services
from .api.rest_api_server import SessionLocal, app

logger = logging.getLogger(__name__)


def initialize_metrics():
    """Initialize Prometheus metrics from the database."""
    db = SessionLocal()
    try:
        services.refresh_metrics(db)
        logger.info("Metrics initialized from stored topologies")
    finally:
        db.close()


def start_rest_api():
    """Start the FastAPI REST API server."""
    host = os.getenv("REST_HOST", "0.0.0.0")
    port = int(os.getenv("REST_PORT", 8000))
    logger.info("Starting REST API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level=os.getenv("LOG_LEVEL", "INFO").lower())


def main():
    initialize_metrics()
    start_rest_api()


if __name__ == "__main__":
    main()
