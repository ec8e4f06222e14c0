#!/usr/bin/env python3
"""
Topology Validation

Pre-deployment lint for resolved topologies. Construction errors already
stop malformed declarations; these checks only report suspicious shapes:
- Unreachable services (not exposed and never called)
- Call cycles between services
- Environment URLs naming a service that is not a declared backend
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Set

from .builder import EdgeKind
from .resolver import ResolvedTopology


class ValidationSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationResult:
    """Result of a single validation check."""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ValidationReport:
    """Full validation report."""
    passed: bool
    errors: int
    warnings: int
    results: List[ValidationResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "errors": self.errors,
            "warnings": self.warnings,
            "results": [
                {
                    "name": r.name,
                    "passed": r.passed,
                    "severity": r.severity.value,
                    "message": r.message,
                    "details": r.details,
                }
                for r in self.results
            ],
        }


URL_HOST_REGEX = re.compile(r"^[a-z]+://([^/:]+)")


class TopologyValidator:
    """
    Lints a resolved topology.

    Checks:
    - Every service is reachable from a gateway or another service
    - No call cycles
    - *_URL environment values agree with declared backends
    """

    def __init__(self):
        self.validators = [
            self._validate_reachability,
            self._validate_call_cycles,
            self._validate_env_backends,
        ]

    def validate_all(self, topology: ResolvedTopology) -> ValidationReport:
        """Run all validators on the topology."""
        results = [validator(topology) for validator in self.validators]

        errors = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warnings = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        return ValidationReport(
            passed=errors == 0,
            errors=errors,
            warnings=warnings,
            results=results,
        )

    def _validate_reachability(self, topology: ResolvedTopology) -> ValidationResult:
        """Every service should be an entrypoint or somebody's backend."""
        reachable: Set[str] = set()
        for endpoint in topology.endpoints:
            reachable.update(self._expand(topology, endpoint.target))
        for gateway in topology.gateways:
            reachable.update(self._expand(topology, gateway.target))

        # walk the call graph from the entrypoints
        frontier = list(reachable)
        while frontier:
            current = frontier.pop()
            for edge in topology.edges:
                if edge.source != current:
                    continue
                for callee in self._callees(topology, edge):
                    if callee not in reachable:
                        reachable.add(callee)
                        frontier.append(callee)

        unreachable = [s.name for s in topology.services if s.name not in reachable]
        if unreachable:
            return ValidationResult(
                name="reachability",
                passed=False,
                severity=ValidationSeverity.WARNING,
                message=f"{len(unreachable)} service(s) cannot be reached from any gateway",
                details={"unreachable": unreachable},
            )
        return ValidationResult("reachability", True, ValidationSeverity.INFO, "All services reachable")

    def _validate_call_cycles(self, topology: ResolvedTopology) -> ValidationResult:
        """Detect cycles in the service call graph."""
        graph: Dict[str, List[str]] = {s.name: [] for s in topology.services}
        for edge in topology.edges:
            graph[edge.source].extend(self._callees(topology, edge))

        cycles = []
        state: Dict[str, int] = {}
        stack: List[str] = []

        def visit(node: str):
            state[node] = 1
            stack.append(node)
            for callee in graph.get(node, []):
                if state.get(callee) == 1:
                    cycles.append(stack[stack.index(callee):] + [callee])
                elif callee not in state:
                    visit(callee)
            stack.pop()
            state[node] = 2

        for node in graph:
            if node not in state:
                visit(node)

        if cycles:
            return ValidationResult(
                name="call_cycles",
                passed=False,
                severity=ValidationSeverity.WARNING,
                message=f"Found {len(cycles)} call cycle(s)",
                details={"cycles": cycles},
            )
        return ValidationResult("call_cycles", True, ValidationSeverity.INFO, "No call cycles")

    def _validate_env_backends(self, topology: ResolvedTopology) -> ValidationResult:
        """URLs into the naming scope should match a declared backend."""
        suffix = f".{topology.namespace}"
        mismatches = []
        for service in topology.services:
            backends = {e.destination for e in topology.edges if e.source == service.name}
            for key, value in service.env.items():
                if not key.endswith("_URL"):
                    continue
                match = URL_HOST_REGEX.match(value)
                if not match or not match.group(1).endswith(suffix):
                    continue
                callee = match.group(1)[: -len(suffix)]
                if callee not in backends:
                    mismatches.append({"service": service.name, "env": key, "callee": callee})

        if mismatches:
            return ValidationResult(
                name="env_backends",
                passed=False,
                severity=ValidationSeverity.WARNING,
                message=f"{len(mismatches)} environment URL(s) call services that are not backends",
                details={"mismatches": mismatches},
            )
        return ValidationResult("env_backends", True, ValidationSeverity.INFO, "Environment URLs match backends")

    @staticmethod
    def _expand(topology: ResolvedTopology, name: str) -> List[str]:
        if name in topology.routing_table:
            return [t["service"] for t in topology.routing_table[name]]
        return [name]

    @staticmethod
    def _callees(topology: ResolvedTopology, edge) -> List[str]:
        if edge.destination_kind == EdgeKind.ROUTER:
            return [t["service"] for t in topology.routing_table[edge.destination]]
        return [edge.destination]
