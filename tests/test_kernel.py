"""Tests for the plugin kernel."""

from __future__ import annotations

from typing import List

import pytest

from docsite.errors import DuplicateError, LifecycleError, PluginError
from docsite.kernel import Event, Kernel, Plugin


def test_register_rejects_duplicate_names() -> None:
    kernel = Kernel()
    kernel.register(Plugin(name="alpha"))

    with pytest.raises(DuplicateError) as excinfo:
        kernel.register(Plugin(name="alpha", version="2.0.0"))

    assert excinfo.value.name == "alpha"
    assert kernel.plugin_order == ["alpha"]
    assert kernel.get_plugin("alpha").version == "1.0.0"


def test_register_is_chainable_and_ordered() -> None:
    kernel = Kernel()
    kernel.use(Plugin(name="a")).use(Plugin(name="b")).use(Plugin(name="c"))

    assert [plugin.name for plugin in kernel.list_plugins()] == ["a", "b", "c"]
    assert kernel.get_plugin("missing") is None


@pytest.mark.asyncio
async def test_emit_runs_hooks_in_registration_order() -> None:
    calls: List[str] = []
    kernel = Kernel()
    kernel.register(Plugin(name="first", on_build_start=lambda: calls.append("first")))

    async def second() -> None:
        calls.append("second")

    kernel.register(Plugin(name="second", on_build_start=second))
    kernel.on(Event.ON_BUILD_START, lambda: calls.append("listener"))

    await kernel.emit(Event.ON_BUILD_START)

    assert calls == ["first", "second", "listener"]


@pytest.mark.asyncio
async def test_failing_hook_does_not_stop_later_hooks() -> None:
    boom = ValueError("boom")
    seen: List[str] = []
    errors: List[BaseException] = []

    def explode() -> None:
        raise boom

    kernel = Kernel()
    kernel.register(Plugin(name="a", on_build_start=explode))
    kernel.register(Plugin(name="b", on_build_start=lambda: seen.append("b")))
    kernel.on(Event.ON_ERROR, errors.append)

    await kernel.emit(Event.ON_BUILD_START)

    assert seen == ["b"]
    assert len(errors) == 1
    error = errors[0]
    assert isinstance(error, PluginError)
    assert error.plugin == "a"
    assert error.event == "on_build_start"
    assert error.__cause__ is boom


@pytest.mark.asyncio
async def test_failing_error_listener_is_not_reemitted() -> None:
    calls: List[str] = []

    def bad_error_handler(error: BaseException) -> None:
        calls.append("handler")
        raise RuntimeError("handler failed")

    def explode() -> None:
        raise ValueError("boom")

    kernel = Kernel()
    kernel.register(Plugin(name="a", on_build_end=explode, on_error=bad_error_handler))

    await kernel.emit(Event.ON_BUILD_END, None)

    assert calls == ["handler"]


@pytest.mark.asyncio
async def test_transform_events_thread_the_value() -> None:
    kernel = Kernel()
    kernel.register(Plugin(name="upper", on_html_render=lambda html, file: html.upper()))
    kernel.register(Plugin(name="noop", on_html_render=lambda html, file: None))

    async def wrap(html: str, file: object) -> str:
        return f"<div>{html}</div>"

    kernel.register(Plugin(name="wrap", on_html_render=wrap))

    result = await kernel.emit(Event.ON_HTML_RENDER, "<p>hi</p>", object())

    assert result == "<div><P>HI</P></div>"


@pytest.mark.asyncio
async def test_transform_returns_original_value_without_listeners() -> None:
    kernel = Kernel()
    files = ["a", "b"]

    assert await kernel.emit(Event.ON_CONTENT_LOAD, files) is files
    assert await kernel.emit(Event.ON_BUILD_START) is None


@pytest.mark.asyncio
async def test_off_removes_listener() -> None:
    calls: List[str] = []
    kernel = Kernel()

    def listener() -> None:
        calls.append("called")

    kernel.on(Event.ON_BUILD_START, listener)
    kernel.off(Event.ON_BUILD_START, listener)
    kernel.off(Event.ON_BUILD_END, listener)
    await kernel.emit(Event.ON_BUILD_START)

    assert calls == []


@pytest.mark.asyncio
async def test_destroy_is_idempotent_and_reverse_ordered() -> None:
    calls: List[str] = []
    kernel = Kernel()
    kernel.register(Plugin(name="a", on_destroy=lambda: calls.append("a")))
    kernel.register(Plugin(name="b", on_destroy=lambda: calls.append("b")))

    await kernel.destroy()
    await kernel.destroy()

    assert calls == ["b", "a"]
    assert kernel.is_destroyed
    assert kernel.list_plugins() == ()


@pytest.mark.asyncio
async def test_destroyed_kernel_rejects_work() -> None:
    calls: List[str] = []
    kernel = Kernel()
    await kernel.destroy()

    with pytest.raises(LifecycleError):
        kernel.register(Plugin(name="late"))

    kernel.on(Event.ON_BUILD_START, lambda: calls.append("late"))
    await kernel.emit(Event.ON_BUILD_START)
    assert calls == []


@pytest.mark.asyncio
async def test_destroy_reports_teardown_failures() -> None:
    errors: List[BaseException] = []
    calls: List[str] = []

    def broken() -> None:
        raise OSError("disk gone")

    kernel = Kernel()
    kernel.register(Plugin(name="a", on_destroy=lambda: calls.append("a")))
    kernel.register(Plugin(name="b", on_destroy=broken, on_error=errors.append))

    await kernel.destroy()

    assert calls == ["a"]
    assert len(errors) == 1
    assert isinstance(errors[0], PluginError)
    assert errors[0].plugin == "b"


@pytest.mark.asyncio
async def test_async_error_boundary_emits_and_reraises() -> None:
    errors: List[BaseException] = []
    kernel = Kernel()
    kernel.on(Event.ON_ERROR, errors.append)

    async def failing() -> None:
        raise KeyError("missing")

    with pytest.raises(KeyError):
        await kernel.run_with_error_boundary_async(failing)

    assert len(errors) == 1
    assert isinstance(errors[0], KeyError)
    assert await kernel.run_with_error_boundary_async(lambda: 42) == 42


def test_sync_error_boundary_emits_without_running_loop() -> None:
    errors: List[BaseException] = []
    kernel = Kernel()
    kernel.on(Event.ON_ERROR, errors.append)

    def failing() -> None:
        raise ValueError("sync")

    with pytest.raises(ValueError):
        kernel.run_with_error_boundary(failing)

    assert len(errors) == 1
    assert kernel.run_with_error_boundary(lambda: "ok") == "ok"
