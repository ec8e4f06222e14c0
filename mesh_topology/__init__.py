"""
Mesh Topology Plane

Declarative service-mesh topologies: services, backend edges, weighted
routers and gateway exposures, resolved into one immutable graph.
"""

__version__ = "1.0.0"
