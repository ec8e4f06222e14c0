# mesh_topology/api/shared_api_logic.py
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..metrics import METRICS
from ..render.plan_renderer import render_plan
from ..topology.declaration import Declaration, parse_declaration, resolve_declaration
from ..topology.errors import TopologyError
from ..topology.resolver import ResolvedTopology
from ..topology.validation import TopologyValidator
from .diagnostic_logger import diagnostic_logger
from .models import TopologyRecord

logger = logging.getLogger(__name__)


def resolve_logic(document: Any) -> Tuple[Declaration, ResolvedTopology]:
    """Parse and resolve a declaration, recording rejections before re-raising them."""
    try:
        declaration = parse_declaration(document)
        return declaration, resolve_declaration(declaration)
    except TopologyError as e:
        METRICS["construction_errors"].labels(error_type=type(e).__name__).inc()
        diagnostic_logger.log_error(f"{type(e).__name__}: {e.message}", e.context)
        raise


def refresh_metrics(db: Session):
    records = db.query(TopologyRecord).all()
    METRICS["topologies_total"].set(len(records))
    METRICS["services_total"].set(sum(r.service_count or 0 for r in records))
    METRICS["edges_total"].set(sum(r.edge_count or 0 for r in records))


# Topology Services
def create_topology_logic(db: Session, document: Dict[str, Any]) -> TopologyRecord:
    declaration, resolved = resolve_logic(document)

    record = TopologyRecord(
        name=resolved.name,
        namespace=resolved.namespace,
        declaration=declaration.model_dump(by_alias=True, exclude_none=True, mode="json"),
        resolved=resolved.to_dict(),
        service_count=len(resolved.services),
        edge_count=len(resolved.edges),
        status="resolved",
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    refresh_metrics(db)
    diagnostic_logger.log_success(f"Stored topology {record.name} as {record.id}")
    return record


def list_topologies(db: Session) -> List[TopologyRecord]:
    return db.query(TopologyRecord).order_by(TopologyRecord.created_at).all()


def get_topology(db: Session, topology_id: str) -> Optional[TopologyRecord]:
    return db.query(TopologyRecord).filter(TopologyRecord.id == topology_id).first()


def delete_topology_logic(db: Session, topology_id: str) -> Optional[TopologyRecord]:
    record = get_topology(db, topology_id)
    if record:
        db.delete(record)
        db.commit()
        refresh_metrics(db)
        logger.info("Deleted topology %s", topology_id)
    return record


def _resolve_record(record: TopologyRecord) -> ResolvedTopology:
    # stored declarations were valid when stored, replaying them is deterministic
    return resolve_declaration(record.declaration)


def plan_logic(record: TopologyRecord) -> str:
    return render_plan(_resolve_record(record))


def validation_logic(record: TopologyRecord) -> Dict[str, Any]:
    report = TopologyValidator().validate_all(_resolve_record(record))
    for result in report.results:
        if not result.passed:
            diagnostic_logger.log_warning(result.message, {"topology": record.id, **result.details})
    return report.to_dict()
