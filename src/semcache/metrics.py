# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Prometheus metrics for the semantic cache.

- semcache_hits_total
- semcache_misses_total
- semcache_errors_total
- semcache_lookup_latency_seconds

Collectors live in the default registry; exposing them is up to the host
application (e.g. ``prometheus_client.start_http_server``).
"""

from prometheus_client import Counter, Histogram

CACHE_HITS = Counter(
    "semcache_hits_total",
    "Total semantic cache hits",
    ["table"],
)
CACHE_MISSES = Counter(
    "semcache_misses_total",
    "Total semantic cache misses (including degraded lookups)",
    ["table"],
)
CACHE_ERRORS = Counter(
    "semcache_errors_total",
    "Operational errors swallowed by the cache",
    ["operation"],
)
CACHE_LATENCY = Histogram(
    "semcache_lookup_latency_seconds",
    "Cache lookup latency (embedding + nearest-neighbor search)",
    ["operation"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
