"""Prometheus metrics scoped to one telemetry package.

Each package declares its metrics once, in its own ``metrics.py``, through a
``ServiceMetrics`` bound to the package name. Names get the package prefix
and are checked up front, so a typo fails at import rather than at scrape
time. The default registry is used unless one is passed, which is what the
realtime ``/metrics`` endpoint exposes.
"""

from __future__ import annotations

import re
from typing import Sequence

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


def _checked(name: str) -> str:
    if not _NAME_RE.match(name):
        raise ValueError(f"Invalid metric name {name!r}: use snake_case")
    return name


class ServiceMetrics:
    def __init__(self, service: str, registry: CollectorRegistry = REGISTRY):
        self.service = _checked(service)
        self.registry = registry

    def name(self, name: str) -> str:
        if name.startswith(f"{self.service}_"):
            return _checked(name)
        return _checked(f"{self.service}_{name}")

    def counter(
        self, name: str, documentation: str, labels: Sequence[str] = ()
    ) -> Counter:
        return Counter(
            self.name(name), documentation, tuple(labels), registry=self.registry
        )

    def gauge(self, name: str, documentation: str) -> Gauge:
        return Gauge(self.name(name), documentation, registry=self.registry)

    def histogram(
        self,
        name: str,
        documentation: str,
        buckets: Sequence[float] | None = None,
    ) -> Histogram:
        if buckets is None:
            return Histogram(self.name(name), documentation, registry=self.registry)
        return Histogram(
            self.name(name),
            documentation,
            buckets=tuple(buckets),
            registry=self.registry,
        )


__all__ = ["ServiceMetrics"]
