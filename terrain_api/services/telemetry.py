"""
Pipeline Telemetry

Pipeline stages report tags, contexts and spans to an observer. The default
:class:`PipelineObserver` does nothing; :class:`SentryObserver` forwards
everything to Sentry. Observers never change control flow or return values.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator

import sentry_sdk

from terrain_api import config

logger = logging.getLogger(__name__)

EXPECTED_ERROR_MESSAGES = {"Location not found"}


class NullSpan:
    """Span stand-in used when no tracing backend is configured."""

    def set_data(self, key: str, value: Any) -> None:
        pass


class PipelineObserver:
    """No-op observer. Subclass and override to report pipeline activity."""

    def set_tag(self, key: str, value: Any) -> None:
        pass

    def set_context(self, name: str, data: Dict[str, Any]) -> None:
        pass

    @contextmanager
    def span(self, op: str, name: str) -> Iterator[NullSpan]:
        yield NullSpan()

    def capture_exception(self, error: BaseException) -> None:
        pass

    def capture_message(self, message: str, level: str = "info") -> None:
        pass


class SentryObserver(PipelineObserver):
    """Observer that reports to the Sentry SDK."""

    def set_tag(self, key: str, value: Any) -> None:
        sentry_sdk.set_tag(key, str(value))

    def set_context(self, name: str, data: Dict[str, Any]) -> None:
        sentry_sdk.set_context(name, data)

    @contextmanager
    def span(self, op: str, name: str):
        with sentry_sdk.start_span(op=op, name=name) as span:
            yield span

    def capture_exception(self, error: BaseException) -> None:
        sentry_sdk.capture_exception(error)

    def capture_message(self, message: str, level: str = "info") -> None:
        sentry_sdk.capture_message(message, level=level)


def before_send(event, hint):
    """Drop events for expected failures such as unknown locations."""
    exc_info = hint.get("exc_info") if hint else None
    if exc_info:
        error = exc_info[1]
        if str(error) in EXPECTED_ERROR_MESSAGES:
            return None
    return event


def init_sentry() -> bool:
    """
    Initialise the Sentry SDK when a DSN is configured.

    Returns:
        True if Sentry was initialised
    """
    if not config.SENTRY_DSN:
        logger.info("Sentry not initialized (missing SENTRY_DSN)")
        return False

    sentry_sdk.init(
        dsn=config.SENTRY_DSN,
        release=config.RELEASE,
        environment=config.ENVIRONMENT,
        send_default_pii=True,
        traces_sample_rate=config.SENTRY_TRACES_SAMPLE_RATE,
        before_send=before_send,
    )
    sentry_sdk.set_tag("service", "terrain-api")
    sentry_sdk.set_tag("component", "backend")
    logger.info("Sentry initialized for error tracking")
    return True


def get_observer() -> PipelineObserver:
    """Return the observer matching the current configuration."""
    if config.SENTRY_DSN:
        return SentryObserver()
    return PipelineObserver()
