"""
structlog setup and per-layer loggers.

Every entry carries ``app``, ``layer`` and ``component`` so one sync run can be
followed from the universe listing to the metric snapshots, e.g.

    {"app": "etf-intelligence", "layer": "pipeline", "component": "universe-sync",
     "run_id": "2024-06-03T10:00:00+00:00", "event": "batch_completed", ...}

Layers in use: infrastructure (database engine, checkpoint store), ingestion
(EODHD client), pipeline (universe sync, price refresh), storage
(repositories) and analytics (metrics service).
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor

Layer = Literal["infrastructure", "ingestion", "pipeline", "storage", "analytics"]

APP_NAME = "etf-intelligence"


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["app"] = APP_NAME
    return event_dict


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Upper-case copy of ``level`` for log routers that key on ``severity``."""
    event_dict["severity"] = str(event_dict.get("level", "info")).upper()
    return event_dict


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    include_timestamp: bool = True,
) -> None:
    """
    Configure structlog on top of the stdlib root logger.

    Replaces any handler already on the root logger, so calling it twice (or
    after another library configured logging) still applies ``level``.
    Unknown level names fall back to INFO.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)

    processors: list[Processor] = []
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors += [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.stdlib.add_log_level,
        add_severity,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(exception_formatter=structlog.dev.plain_traceback)
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    name: str | None = None,
    layer: Layer | None = None,
    component: str | None = None,
    **initial_context: Any,
) -> structlog.stdlib.BoundLogger:
    """structlog logger bound to ``layer``, ``component`` and ``module`` (when given)."""
    context = {
        key: value
        for key, value in (("layer", layer), ("component", component), ("module", name))
        if value
    }
    context.update(initial_context)
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


def _layer_logger(
    layer: Layer, component: str, context: dict[str, Any]
) -> structlog.stdlib.BoundLogger:
    # None-valued context (an unset provider or run_id) is left out of the entry
    bound = {key: value for key, value in context.items() if value is not None}
    return get_logger(layer, layer=layer, component=component, **bound)


def get_infrastructure_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    """Database engine and checkpoint store."""
    return _layer_logger("infrastructure", component, context)


def get_ingestion_logger(
    component: str, provider: str | None = None, **context: Any
) -> structlog.stdlib.BoundLogger:
    return _layer_logger("ingestion", component, {"provider": provider, **context})


def get_pipeline_logger(
    component: str = "universe-sync", run_id: str | None = None, **context: Any
) -> structlog.stdlib.BoundLogger:
    """
    Logger for run orchestration.

        >>> log = get_pipeline_logger(run_id="2024-06-03T10:00:00")
        >>> log.info("batch_started", batch=3)
    """
    return _layer_logger("pipeline", component, {"run_id": run_id, **context})


def get_storage_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    return _layer_logger("storage", component, context)


def get_analytics_logger(component: str, **context: Any) -> structlog.stdlib.BoundLogger:
    return _layer_logger("analytics", component, context)
