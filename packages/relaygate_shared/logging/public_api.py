"""Composable instrumentation helpers for public API methods.

``public_api_instrumented`` wraps one sync or async method and fans its
invocation and completion events out to concern hooks. Logging is always
available; tracing and metrics concerns are added automatically when
``opentelemetry`` is importable. ``public_api_logged`` is the usual callsite.
"""

from __future__ import annotations

import inspect
from contextvars import ContextVar
from dataclasses import dataclass
from functools import lru_cache, wraps
from time import perf_counter
from typing import Any, Callable, Mapping, Protocol, Sequence

from . import fields
from .context import log_context

_DEFAULT_METER_NAME = "relaygate.public_api"
_DEFAULT_TRACER_NAME = "relaygate.public_api"
METRIC_PUBLIC_API_CALLS_TOTAL = "relaygate_public_api_calls_total"
METRIC_PUBLIC_API_DURATION_MS = "relaygate_public_api_duration_ms"
METRIC_PUBLIC_API_ERRORS_TOTAL = "relaygate_public_api_errors_total"
METRIC_INSTRUMENTATION_FAILURES_TOTAL = (
    "relaygate_public_api_instrumentation_failures_total"
)


@dataclass(frozen=True)
class InvocationContext:
    """Structured metadata describing one public API invocation."""

    component_id: str
    api_name: str
    references: Mapping[str, str]


@dataclass(frozen=True)
class CompletionContext:
    """Structured metadata describing one completed public API invocation."""

    invocation: InvocationContext
    success: bool
    duration_ms: float
    errors: list[str]
    error_kind: str | None = None


class PublicApiInstrumentationConcern(Protocol):
    """Hook contract for one public API instrumentation concern."""

    def on_invocation(self, context: InvocationContext) -> None:
        """Handle invocation-start event for one method call."""

    def on_completion(self, context: CompletionContext) -> None:
        """Handle completion event for one method call."""


class PublicApiLoggingConcern:
    """Emit invocation and completion records on one logger."""

    def __init__(self, *, logger: Any) -> None:
        self._logger = logger

    def on_invocation(self, context: InvocationContext) -> None:
        payload = _invocation_log_context(context)
        payload[fields.EVENT] = fields.PUBLIC_API_INVOCATION_EVENT
        with log_context(payload):
            self._logger.debug("Public API invocation")

    def on_completion(self, context: CompletionContext) -> None:
        payload = _invocation_log_context(context.invocation)
        payload.update(
            {
                fields.EVENT: fields.PUBLIC_API_COMPLETION_EVENT,
                fields.SUCCESS: context.success,
                fields.DURATION_MS: context.duration_ms,
                fields.ERRORS: context.errors,
                fields.ERROR_KIND: context.error_kind,
            }
        )
        with log_context(payload):
            if context.success:
                self._logger.info("Public API completion")
            else:
                self._logger.warning("Public API completion")


class _CounterLike(Protocol):
    """Minimal counter interface used by the metrics concern."""

    def add(self, amount: int | float, attributes: Mapping[str, str]) -> None:
        """Record one counter increment with attributes."""


class _HistogramLike(Protocol):
    """Minimal histogram interface used by the metrics concern."""

    def record(self, amount: float, attributes: Mapping[str, str]) -> None:
        """Record one sample with attributes."""


class _SpanLike(Protocol):
    """Minimal span interface used by the tracing concern."""

    def set_attribute(self, key: str, value: object) -> None:
        """Attach one attribute to a span."""

    def record_exception(self, exception: Exception) -> None:
        """Record one exception on a span."""

    def set_status(self, status: object) -> None:
        """Set the status of a span."""


class _SpanContextManagerLike(Protocol):
    def __enter__(self) -> _SpanLike: ...

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None: ...


class _TracerLike(Protocol):
    def start_as_current_span(self, name: str) -> _SpanContextManagerLike: ...


@dataclass(frozen=True)
class _TraceScope:
    manager: _SpanContextManagerLike
    span: _SpanLike


class PublicApiTracingConcern:
    """Open one span per invocation and close it on completion."""

    def __init__(self, *, tracer: _TracerLike) -> None:
        self._tracer = tracer
        self._active_scopes: ContextVar[tuple[_TraceScope, ...]] = ContextVar(
            "public_api_tracing_scopes", default=()
        )

    def on_invocation(self, context: InvocationContext) -> None:
        manager = self._tracer.start_as_current_span(
            f"public_api.{context.component_id}.{context.api_name}"
        )
        span = manager.__enter__()
        span.set_attribute(fields.COMPONENT_ID, context.component_id)
        span.set_attribute(fields.API_NAME, context.api_name)
        for key, value in context.references.items():
            span.set_attribute(f"reference.{key}", value)
        scopes = self._active_scopes.get()
        self._active_scopes.set((*scopes, _TraceScope(manager=manager, span=span)))

    def on_completion(self, context: CompletionContext) -> None:
        scopes = self._active_scopes.get()
        if not scopes:
            return
        scope = scopes[-1]
        self._active_scopes.set(scopes[:-1])

        scope.span.set_attribute(fields.SUCCESS, context.success)
        scope.span.set_attribute(fields.DURATION_MS, context.duration_ms)
        scope.span.set_attribute(fields.OUTCOME, _outcome(context.success))
        scope.span.set_attribute("errors.count", len(context.errors))
        if not context.success:
            if context.error_kind is not None:
                scope.span.set_attribute(fields.ERROR_KIND, context.error_kind)
            _set_span_error_status(scope.span)
            if context.errors:
                scope.span.record_exception(RuntimeError("; ".join(context.errors[:3])))
        scope.manager.__exit__(None, None, None)


class PublicApiMetricsConcern:
    """Count calls and failures per component method and record latency.

    Failures are broken down by error kind and, when the call names one, by
    service, so each failure kind is visible per service.
    """

    def __init__(
        self,
        *,
        public_api_calls_total: _CounterLike,
        public_api_duration_ms: _HistogramLike,
        public_api_errors_total: _CounterLike,
    ) -> None:
        self._public_api_calls_total = public_api_calls_total
        self._public_api_duration_ms = public_api_duration_ms
        self._public_api_errors_total = public_api_errors_total

    def on_invocation(self, context: InvocationContext) -> None:
        del context

    def on_completion(self, context: CompletionContext) -> None:
        attrs = {
            fields.COMPONENT_ID: context.invocation.component_id,
            fields.API_NAME: context.invocation.api_name,
            fields.OUTCOME: _outcome(context.success),
        }
        self._public_api_calls_total.add(1, attributes=attrs)
        self._public_api_duration_ms.record(context.duration_ms, attributes=attrs)
        if context.success:
            return

        error_attrs = {
            fields.COMPONENT_ID: context.invocation.component_id,
            fields.API_NAME: context.invocation.api_name,
            fields.ERROR_KIND: context.error_kind or "unknown",
        }
        service_name = context.invocation.references.get(fields.SERVICE_NAME)
        if service_name:
            error_attrs[fields.SERVICE_NAME] = service_name
        self._public_api_errors_total.add(1, attributes=error_attrs)


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    concerns: Sequence[PublicApiInstrumentationConcern] | None = None,
    logger: Any | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorate one public API method with composable instrumentation concerns."""
    resolved: tuple[PublicApiInstrumentationConcern, ...] = tuple(concerns or ())
    tracing = _default_public_api_tracing_concern()
    if tracing is not None:
        resolved = (*resolved, tracing)
    metrics = _default_public_api_metrics_concern()
    if metrics is not None:
        resolved = (*resolved, metrics)
    if logger is not None:
        resolved = (PublicApiLoggingConcern(logger=logger), *resolved)
    if not resolved:
        raise ValueError("public_api_instrumented requires at least one concern")

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        method_name = api_name or func.__name__

        def _start(kwargs: Mapping[str, Any]) -> InvocationContext:
            invocation = InvocationContext(
                component_id=component_id,
                api_name=method_name,
                references={
                    name: str(kwargs[name])
                    for name in id_fields
                    if kwargs.get(name) not in (None, "")
                },
            )
            _emit_invocation(concerns=resolved, context=invocation, logger=logger)
            return invocation

        def _finish(
            invocation: InvocationContext,
            started: float,
            exc: Exception | None,
        ) -> None:
            completion = CompletionContext(
                invocation=invocation,
                success=exc is None,
                duration_ms=round((perf_counter() - started) * 1000.0, 3),
                errors=[] if exc is None else [_summarize(exc)],
                error_kind=None if exc is None else _error_kind(exc),
            )
            _emit_completion(concerns=resolved, context=completion, logger=logger)

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                invocation = _start(kwargs)
                started = perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    _finish(invocation, started, exc)
                    raise
                _finish(invocation, started, None)
                return result

            return async_wrapper

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            invocation = _start(kwargs)
            started = perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _finish(invocation, started, exc)
                raise
            _finish(invocation, started, None)
            return result

        return wrapper

    return decorator


def public_api_logged(
    *,
    logger: Any,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Logging wrapper over ``public_api_instrumented`` with default concerns."""
    return public_api_instrumented(
        logger=logger,
        component_id=component_id,
        api_name=api_name,
        id_fields=id_fields,
        concerns=(),
    )


def _invocation_log_context(context: InvocationContext) -> dict[str, object]:
    payload: dict[str, object] = {
        fields.COMPONENT_ID: context.component_id,
        fields.API_NAME: context.api_name,
    }
    payload.update(context.references)
    return payload


def _outcome(success: bool) -> str:
    return "success" if success else "failure"


def _error_kind(exc: Exception) -> str:
    return str(getattr(exc, "kind", type(exc).__name__))


def _summarize(exc: Exception) -> str:
    """Return a safe one-line summary; messages never carry secrets."""
    message = str(exc).splitlines()[0] if str(exc) else ""
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


def _emit_invocation(
    *,
    concerns: Sequence[PublicApiInstrumentationConcern],
    context: InvocationContext,
    logger: Any | None,
) -> None:
    """Dispatch an invocation event; a failing concern never breaks the call."""
    for concern in concerns:
        try:
            concern.on_invocation(context)
        except Exception as exc:  # noqa: BLE001
            _log_concern_failure(
                logger=logger,
                stage="invocation",
                concern=type(concern).__name__,
                exc=exc,
                invocation=context,
            )


def _emit_completion(
    *,
    concerns: Sequence[PublicApiInstrumentationConcern],
    context: CompletionContext,
    logger: Any | None,
) -> None:
    for concern in concerns:
        try:
            concern.on_completion(context)
        except Exception as exc:  # noqa: BLE001
            _log_concern_failure(
                logger=logger,
                stage="completion",
                concern=type(concern).__name__,
                exc=exc,
                invocation=context.invocation,
            )


def _log_concern_failure(
    *,
    logger: Any | None,
    stage: str,
    concern: str,
    exc: Exception,
    invocation: InvocationContext,
) -> None:
    if logger is not None:
        with log_context(
            {
                fields.EVENT: fields.PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT,
                fields.COMPONENT_ID: invocation.component_id,
                fields.API_NAME: invocation.api_name,
                fields.STAGE: stage,
                fields.CONCERN: concern,
                fields.ERRORS: [_summarize(exc)],
            }
        ):
            logger.warning("Public API instrumentation concern failed")
    _record_instrumentation_failure(
        stage=stage,
        concern=concern,
        component_id=invocation.component_id,
        api_name=invocation.api_name,
    )


def _set_span_error_status(span: _SpanLike) -> None:
    """Mark a span failed when the OTel tracing API is available."""
    try:
        from opentelemetry.trace.status import Status, StatusCode
    except ImportError:
        return
    span.set_status(Status(StatusCode.ERROR))


@lru_cache(maxsize=1)
def _default_public_api_tracing_concern() -> PublicApiTracingConcern | None:
    """Build the OTel-backed tracing concern when opentelemetry is installed."""
    try:
        from opentelemetry import trace as otel_trace
    except ImportError:
        return None
    return PublicApiTracingConcern(tracer=otel_trace.get_tracer(_DEFAULT_TRACER_NAME))


@lru_cache(maxsize=1)
def _default_public_api_metrics_concern() -> PublicApiMetricsConcern | None:
    instruments = _default_otel_instruments()
    if instruments is None:
        return None
    return PublicApiMetricsConcern(
        public_api_calls_total=instruments.public_api_calls_total,
        public_api_duration_ms=instruments.public_api_duration_ms,
        public_api_errors_total=instruments.public_api_errors_total,
    )


@dataclass(frozen=True)
class _OtelInstruments:
    public_api_calls_total: _CounterLike
    public_api_duration_ms: _HistogramLike
    public_api_errors_total: _CounterLike
    instrumentation_failures_total: _CounterLike


@lru_cache(maxsize=1)
def _default_otel_instruments() -> _OtelInstruments | None:
    """Create OTel metric instruments when opentelemetry is installed."""
    try:
        from opentelemetry import metrics as otel_metrics
    except ImportError:
        return None

    meter = otel_metrics.get_meter(_DEFAULT_METER_NAME)
    return _OtelInstruments(
        public_api_calls_total=meter.create_counter(
            name=METRIC_PUBLIC_API_CALLS_TOTAL,
            description="Count of public API invocations by component/method/outcome.",
            unit="1",
        ),
        public_api_duration_ms=meter.create_histogram(
            name=METRIC_PUBLIC_API_DURATION_MS,
            description="Public API invocation latency in milliseconds.",
            unit="ms",
        ),
        public_api_errors_total=meter.create_counter(
            name=METRIC_PUBLIC_API_ERRORS_TOTAL,
            description="Count of public API failures by error kind and service.",
            unit="1",
        ),
        instrumentation_failures_total=meter.create_counter(
            name=METRIC_INSTRUMENTATION_FAILURES_TOTAL,
            description="Count of instrumentation concern failures.",
            unit="1",
        ),
    )


def _record_instrumentation_failure(
    *, stage: str, concern: str, component_id: str, api_name: str
) -> None:
    instruments = _default_otel_instruments()
    if instruments is None:
        return
    instruments.instrumentation_failures_total.add(
        1,
        attributes={
            fields.COMPONENT_ID: component_id,
            fields.API_NAME: api_name,
            fields.STAGE: stage,
            fields.CONCERN: concern,
        },
    )
