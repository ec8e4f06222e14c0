# File: mesh_topology/api/rest_api_server.py
#!/usr/bin/env python3
"""
Mesh Topology REST API Server

FastAPI-based REST API for topology declarations.
Implements:
- Dry-run resolution
- Stored topologies (create, list, get, delete)
- Text plans and lint reports for stored topologies
- Health and Prometheus metrics
"""

import logging
import os
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, ConfigDict

from ..metrics import METRICS
from ..topology.errors import TopologyError
from . import shared_api_logic as services
from .models import Base, make_engine, make_session_factory

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Mesh Topology Plane API",
    description="Declare service topologies and resolve them into deployable graphs",
    version="1.0.0",
)

engine = make_engine()
SessionLocal = make_session_factory(engine)
Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class TopologySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    namespace: str
    service_count: int
    edge_count: int
    status: str
    created_at: Optional[datetime] = None


class TopologyDetail(TopologySummary):
    declaration: Dict[str, Any]
    resolved: Dict[str, Any]


@app.exception_handler(TopologyError)
async def topology_error_handler(request: Request, exc: TopologyError):
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    METRICS["api_requests"].labels(method=request.method, endpoint=request.url.path).inc()
    start = time.time()
    response = await call_next(request)
    logger.debug("%s %s -> %d in %.1fms", request.method, request.url.path,
                 response.status_code, (time.time() - start) * 1000)
    return response


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post("/resolve")
def resolve_topology(document: Dict[str, Any] = Body(...)):
    _, resolved = services.resolve_logic(document)
    return resolved.to_dict()


@app.post("/topologies", response_model=TopologyDetail, status_code=201)
def create_topology(document: Dict[str, Any] = Body(...), db=Depends(get_db)):
    return services.create_topology_logic(db, document)


@app.get("/topologies", response_model=List[TopologySummary])
def list_topologies(db=Depends(get_db)):
    return services.list_topologies(db)


def _get_or_404(db, topology_id: str):
    record = services.get_topology(db, topology_id)
    if not record:
        raise HTTPException(status_code=404, detail="Topology not found")
    return record


@app.get("/topologies/{topology_id}", response_model=TopologyDetail)
def get_topology(topology_id: str, db=Depends(get_db)):
    return _get_or_404(db, topology_id)


@app.get("/topologies/{topology_id}/plan", response_class=PlainTextResponse)
def get_topology_plan(topology_id: str, db=Depends(get_db)):
    return services.plan_logic(_get_or_404(db, topology_id))


@app.get("/topologies/{topology_id}/validation")
def get_topology_validation(topology_id: str, db=Depends(get_db)):
    return services.validation_logic(_get_or_404(db, topology_id))


@app.delete("/topologies/{topology_id}")
def delete_topology(topology_id: str, db=Depends(get_db)):
    if not services.delete_topology_logic(db, topology_id):
        raise HTTPException(status_code=404, detail="Topology not found")
    return {"status": "deleted", "id": topology_id}
