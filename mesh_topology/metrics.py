# File: metrics.py

from prometheus_client import Counter, Gauge, Histogram

METRICS = {
    "topologies_total": Gauge("topology_plane_topologies_total", "Total count of stored topologies"),
    "services_total": Gauge("topology_plane_services_total", "Total count of services across stored topologies"),
    "edges_total": Gauge("topology_plane_edges_total", "Total count of edges across stored topologies"),
    "resolve_latency": Histogram(
        "topology_plane_resolve_duration_ms",
        "Time taken to resolve a topology in milliseconds",
        buckets=(1, 5, 10, 25, 50, 100, 250, 500),
    ),
    "construction_errors": Counter(
        "topology_plane_construction_errors_total",
        "Count of rejected declarations",
        ["error_type"],
    ),
    "api_requests": Counter(
        "topology_plane_api_requests_total",
        "Total REST API requests",
        ["method", "endpoint"],
    ),
}
