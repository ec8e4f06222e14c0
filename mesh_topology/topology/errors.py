#!/usr/bin/env python3
"""
Topology Construction Errors

Every failure raised while declaring a topology is a static validation
failure: the declaration is malformed, nothing is retried, and no partial
topology is ever handed on.
"""

from typing import Any, Dict, Optional


class TopologyError(Exception):
    """Base class for construction-time topology failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "detail": self.message,
            "context": self.context,
        }


class DuplicateNameError(TopologyError):
    """A service or virtual name is already declared in the naming scope."""


class UnknownServiceError(TopologyError):
    """A handle does not belong to this topology."""


class EmptyGroupError(TopologyError):
    """A weighted group was declared without members."""


class NegativeWeightError(TopologyError):
    """A weighted group member carries a weight below zero."""


class NoRouteTargetError(TopologyError):
    """A gateway was asked to expose something the topology cannot route to."""


class DanglingReferenceError(TopologyError):
    """An edge or group member names a service that was never declared."""


class InvalidDescriptorError(TopologyError):
    """A descriptor field is out of range or malformed."""


class SelfLoopError(TopologyError):
    """An edge would connect a service to itself."""


class DeclarationError(TopologyError):
    """A declaration document does not have the expected shape."""
