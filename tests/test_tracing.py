from unittest.mock import patch

from opentelemetry.sdk.trace import TracerProvider

from dependency_indexer.observability import tracing


def test_init_tracing_keeps_existing_sdk_provider() -> None:
    tracing.init_tracing.cache_clear()
    existing = TracerProvider()
    with patch.object(tracing.trace, "get_tracer_provider", return_value=existing), patch.object(
        tracing.trace, "set_tracer_provider"
    ) as set_provider:
        tracing.init_tracing("dependency-indexer-test")
    set_provider.assert_not_called()
    tracing.init_tracing.cache_clear()


def test_init_tracing_installs_named_provider() -> None:
    tracing.init_tracing.cache_clear()
    with patch.object(tracing.trace, "get_tracer_provider", return_value=object()), patch.object(
        tracing.trace, "set_tracer_provider"
    ) as set_provider:
        tracing.init_tracing("dependency-indexer-test")
    provider = set_provider.call_args.args[0]
    assert provider.resource.attributes["service.name"] == "dependency-indexer-test"
    tracing.init_tracing.cache_clear()


def test_get_tracer_creates_spans() -> None:
    tracer = tracing.get_tracer("dependency_indexer.test")
    with tracer.start_as_current_span("probe") as span:
        span.set_attribute("repo_id", "r")
