"""CLI parser and command behaviour tests."""

from __future__ import annotations

import pytest

from docsite import cli
from docsite.cli import _build_parser
from tests._fixtures.site_builder import SiteBuilder


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)


def test_cli_accepts_verbose_before_command() -> None:
    args = _build_parser().parse_args(["--verbose", "build"])
    assert args.verbose is True
    assert args.command == "build"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    args = _build_parser().parse_args(["dev", "site", "-v"])
    assert args.verbose is True
    assert args.command == "dev"
    assert args.path == "site"


def test_cli_dev_options() -> None:
    args = _build_parser().parse_args(["dev", "--host", "0.0.0.0", "--port", "8000"])
    assert args.host == "0.0.0.0"
    assert args.port == 8000
    assert args.config is None


def test_cli_requires_command() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args([])


def test_build_command_prints_summary(
    site_builder: SiteBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    site_builder.write_docs({"index.md": "# Home\n", "guide/intro.md": "# Intro\n"})

    cli.main(["build", str(site_builder.root)])

    out = capsys.readouterr().out
    assert out.startswith("Built 2 pages and 0 assets in ")
    assert (site_builder.dist / "index.html").exists()


def test_build_command_uses_explicit_config(
    site_builder: SiteBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    site_builder.write({"docsite.yml": "src_dir: pages\nout_dir: public\n"})
    site_builder.write({"pages/index.md": "# Home\n"})

    cli.main(["build", "--config", str(site_builder.root / "docsite.yml")])

    assert (site_builder.root / "public" / "index.html").exists()
    assert "Built 1 pages" in capsys.readouterr().out


def test_build_command_reports_docs_errors(
    site_builder: SiteBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["build", str(site_builder.root)])

    assert excinfo.value.code == 1
    assert "[CONTENT_NOT_FOUND]" in capsys.readouterr().err


def test_build_command_reports_unknown_plugins(
    site_builder: SiteBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    site_builder.write({"docsite.yml": "plugins:\n  - missing\n"})

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["build", str(site_builder.root)])

    assert excinfo.value.code == 1
    assert "Unknown plugins requested: missing" in capsys.readouterr().err
