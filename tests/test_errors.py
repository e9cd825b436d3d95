"""Tests for docsite.errors."""

from __future__ import annotations

from docsite.errors import BuildError, DocsError, ErrorCode, PluginError, RouteConflict


def test_format_includes_code_context_and_cause() -> None:
    try:
        try:
            raise OSError("disk full")
        except OSError as exc:
            raise BuildError("Build failed", context={"page": "/guide/"}) from exc
    except DocsError as error:
        rendered = error.format()

    assert rendered.startswith("[BUILD_ERROR] Build failed")
    assert '"page": "/guide/"' in rendered
    assert rendered.endswith("Caused by: disk full")


def test_plugin_error_chains_original_exception() -> None:
    cause = ValueError("bad value")

    error = PluginError("on_html_render", "toc", cause)

    assert error.code is ErrorCode.PLUGIN_ERROR
    assert error.__cause__ is cause
    assert error.context == {"event": "on_html_render", "plugin": "toc"}
    assert "plugin 'toc' failed during on_html_render" in error.message


def test_route_conflict_names_path_and_files() -> None:
    error = RouteConflict("/guide/", ["guide.md", "guide/index.md"])

    assert error.code is ErrorCode.ROUTE_CONFLICT
    assert "/guide/" in str(error)
    assert error.context["files"] == ["guide.md", "guide/index.md"]
