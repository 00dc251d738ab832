"""OpenTelemetry tracing helpers.

Without a configured exporter spans are still created in-process, which keeps
the indexing phases visible when debugging locally.
"""

from __future__ import annotations

from functools import lru_cache

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider


@lru_cache()
def init_tracing(service_name: str = "dependency-indexer") -> None:
    # Leave a provider configured by the host untouched.
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        return
    trace.set_tracer_provider(
        TracerProvider(resource=Resource.create({"service.name": service_name}))
    )


def get_tracer(name: str):
    return trace.get_tracer(name)
