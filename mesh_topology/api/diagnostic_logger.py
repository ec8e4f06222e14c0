#!/usr/bin/env python3
"""
Diagnostic Logger for the Mesh Topology Plane

Keeps a running record of rejected declarations and lint warnings so an
operator can see why topologies failed to resolve.
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger("diagnostic")

MAX_RECORDS = int(os.getenv("DIAGNOSTIC_MAX_RECORDS", "500"))


class DiagnosticLogger:
    """Centralized diagnostic logging for topology construction."""

    def __init__(self, max_records: int = MAX_RECORDS):
        self.start_time = datetime.now()
        self.max_records = max_records
        self.errors: List[Dict[str, Any]] = []
        self.warnings: List[Dict[str, Any]] = []

    def _append(self, records: List[Dict[str, Any]], entry: Dict[str, Any]):
        records.append(entry)
        if len(records) > self.max_records:
            del records[: len(records) - self.max_records]

    def log_error(self, error_msg: str, context: Optional[Dict[str, Any]] = None):
        """Log an error with context."""
        self._append(self.errors, {
            'timestamp': datetime.now().isoformat(),
            'error': error_msg,
            'context': context or {}
        })
        logger.error(f"ERROR: {error_msg}")
        if context:
            logger.error(f"Context: {json.dumps(context, indent=2, default=str)}")

    def log_warning(self, warning_msg: str, context: Optional[Dict[str, Any]] = None):
        """Log a warning with context."""
        self._append(self.warnings, {
            'timestamp': datetime.now().isoformat(),
            'warning': warning_msg,
            'context': context or {}
        })
        logger.warning(f"WARNING: {warning_msg}")
        if context:
            logger.warning(f"Context: {json.dumps(context, indent=2, default=str)}")

    def log_success(self, success_msg: str):
        """Log a success message."""
        logger.info(f"SUCCESS: {success_msg}")

    def reset(self):
        self.start_time = datetime.now()
        self.errors = []
        self.warnings = []

    def generate_report(self, report_path: Optional[str] = None) -> Dict[str, Any]:
        """Generate a diagnostic report, optionally saving it as JSON."""
        report = {
            'start_time': self.start_time.isoformat(),
            'end_time': datetime.now().isoformat(),
            'errors': self.errors,
            'warnings': self.warnings,
            'total_errors': len(self.errors),
            'total_warnings': len(self.warnings)
        }

        if report_path:
            with open(report_path, 'w') as f:
                json.dump(report, f, indent=2, default=str)
            logger.info(f"Report saved to: {report_path}")

        logger.info(f"Diagnostics: {len(self.errors)} errors, {len(self.warnings)} warnings")
        return report


# Global diagnostic logger instance
diagnostic_logger = DiagnosticLogger()
