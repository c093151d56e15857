"""Prometheus monitoring configuration with duplicate-registration guard."""

from prometheus_fastapi_instrumentator import Instrumentator

from fastapi import FastAPI

# Global guard to avoid double-registration when multiple app instances are created in tests.
_metrics_configured = False


def setup_monitoring(app: FastAPI) -> None:
    """Attach Prometheus instrumentation once per process.

    Exposes `/metrics` for scraping and collects request totals, duration, and in-flight gauges.
    """
    global _metrics_configured
    if _metrics_configured or getattr(app.state, "metrics_enabled", False):
        return

    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=[
            "/metrics",
            "/livez",
            "/readyz",
            "/docs",
            "/openapi.json",
        ],
        env_var_name="ENABLE_METRICS",
        inprogress_name="materials_api_inprogress",
        inprogress_labels=True,
    )

    instrumentator.instrument(app)
    instrumentator.expose(app, include_in_schema=False)

    app.state.metrics_enabled = True
    _metrics_configured = True
