"""Tests for public API invocation/completion logging.

The static check at the bottom keeps the gateway's public entry points
instrumented as the implementation evolves.
"""

from __future__ import annotations

import ast
import asyncio
from pathlib import Path

import pytest

from packages.relaygate_shared.errors import RateLimitedError, ServiceNotFoundError
from packages.relaygate_shared.logging import (
    CompletionContext,
    InvocationContext,
    get_context,
    public_api_instrumented,
    public_api_logged,
)

_REPO_ROOT = Path(__file__).resolve().parents[2]


class _RecordingLogger:
    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict[str, str]]] = []

    def _record(self, level: str, message: str) -> None:
        self.records.append((level, message, get_context()))

    def debug(self, message: str) -> None:
        self._record("debug", message)

    def info(self, message: str) -> None:
        self._record("info", message)

    def warning(self, message: str) -> None:
        self._record("warning", message)


def test_sync_success_emits_invocation_and_completion() -> None:
    logger = _RecordingLogger()

    @public_api_logged(
        logger=logger, component_id="service_demo", id_fields=("service_name",)
    )
    def lookup(*, service_name: str, action: str = "") -> str:
        return f"{service_name}:{action}"

    assert lookup(service_name="phi4", action="intent.parse") == "phi4:intent.parse"

    (inv_level, _, inv_ctx), (done_level, _, done_ctx) = logger.records
    assert inv_level == "debug"
    assert inv_ctx["event"] == "public_api_invocation"
    assert inv_ctx["component_id"] == "service_demo"
    assert inv_ctx["api_name"] == "lookup"
    assert inv_ctx["service_name"] == "phi4"
    assert "action" not in inv_ctx
    assert done_level == "info"
    assert done_ctx["success"] == "True"
    assert "error_kind" not in done_ctx


def test_failure_logs_warning_with_error_kind_and_reraises() -> None:
    logger = _RecordingLogger()

    @public_api_logged(logger=logger, component_id="service_demo", api_name="get")
    def failing() -> None:
        raise ServiceNotFoundError(
            message="service 'ghost' is not registered", service_name="ghost"
        )

    with pytest.raises(ServiceNotFoundError):
        failing()

    level, _, context = logger.records[-1]
    assert level == "warning"
    assert context["api_name"] == "get"
    assert context["success"] == "False"
    assert context["error_kind"] == "NotFound"
    assert "ServiceNotFoundError" in context["errors"]


def test_async_methods_are_wrapped_as_coroutines() -> None:
    logger = _RecordingLogger()

    @public_api_logged(
        logger=logger, component_id="service_demo", id_fields=("session_id",)
    )
    async def cancel(*, session_id: str) -> bool:
        await asyncio.sleep(0)
        return True

    assert asyncio.run(cancel(session_id="01J0000000000000000000000A")) is True
    assert [level for level, _, _ in logger.records] == ["debug", "info"]
    assert logger.records[0][2]["session_id"] == "01J0000000000000000000000A"


def test_context_does_not_leak_after_call() -> None:
    logger = _RecordingLogger()

    @public_api_logged(logger=logger, component_id="service_demo")
    def noop() -> None:
        return None

    noop()

    assert "component_id" not in get_context()


@pytest.mark.parametrize(
    ("relative_path", "class_name", "methods"),
    [
        (
            "services/action/invocation_gateway/implementation.py",
            "DefaultInvocationGateway",
            {"invoke", "open_stream", "cancel"},
        ),
        (
            "services/action/policy_enforcer/implementation.py",
            "DefaultPolicyEnforcer",
            {"authorize"},
        ),
    ],
)
def test_public_entry_points_are_instrumented(
    relative_path: str, class_name: str, methods: set[str]
) -> None:
    decorated = _decorated_methods(_REPO_ROOT / relative_path, class_name)
    missing = sorted(methods - decorated)
    assert not missing, f"Missing @public_api_logged on {class_name}: {missing}"


def _decorated_methods(file_path: Path, class_name: str) -> set[str]:
    """Return method names on ``class_name`` decorated with ``public_api_logged``."""
    module = ast.parse(file_path.read_text(encoding="utf-8"))
    for node in module.body:
        if isinstance(node, ast.ClassDef) and node.name == class_name:
            return {
                child.name
                for child in node.body
                if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef))
                and any(_is_public_api_logged(item) for item in child.decorator_list)
            }
    raise AssertionError(f"Class not found: {class_name} in {file_path}")


def _is_public_api_logged(decorator: ast.expr) -> bool:
    target = decorator.func if isinstance(decorator, ast.Call) else decorator
    if isinstance(target, ast.Name):
        return target.id == "public_api_logged"
    return isinstance(target, ast.Attribute) and target.attr == "public_api_logged"


class _RecordingConcern:
    def __init__(self) -> None:
        self.invocations: list[InvocationContext] = []
        self.completions: list[CompletionContext] = []

    def on_invocation(self, context: InvocationContext) -> None:
        self.invocations.append(context)

    def on_completion(self, context: CompletionContext) -> None:
        self.completions.append(context)


class _BrokenConcern:
    def on_invocation(self, context: InvocationContext) -> None:
        raise RuntimeError("exporter offline")

    def on_completion(self, context: CompletionContext) -> None:
        raise RuntimeError("exporter offline")


def test_instrumented_calls_fan_out_to_every_concern() -> None:
    recorder = _RecordingConcern()

    @public_api_instrumented(
        component_id="service_demo",
        id_fields=("service_name",),
        concerns=(recorder,),
    )
    async def invoke(*, service_name: str) -> str:
        raise RateLimitedError(
            message=f"rate limit exceeded for '{service_name}'",
            service_name=service_name,
            retry_after_seconds=1.0,
        )

    with pytest.raises(RateLimitedError):
        asyncio.run(invoke(service_name="phi4"))

    (invocation,) = recorder.invocations
    (completion,) = recorder.completions
    assert invocation.references == {"service_name": "phi4"}
    assert completion.success is False
    assert completion.error_kind == "RateLimited"


def test_failing_concern_does_not_break_the_call() -> None:
    logger = _RecordingLogger()
    recorder = _RecordingConcern()

    @public_api_instrumented(
        component_id="service_demo",
        concerns=(_BrokenConcern(), recorder),
        logger=logger,
    )
    def lookup() -> str:
        return "ok"

    assert lookup() == "ok"

    assert len(recorder.completions) == 1
    failures = [
        context
        for level, _, context in logger.records
        if context.get("event") == "public_api_instrumentation_failure"
    ]
    assert [context["stage"] for context in failures] == ["invocation", "completion"]
    assert all(context["concern"] == "_BrokenConcern" for context in failures)
