"""Tests for the tforge command line."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from tforge.cli import main
from tforge.pipeline.state import PipelineState, StepState

BASE = """
[template]
name = "base"
description = "Base project layout"
category = "core"

[parameters]
greeting = { type = "string", prompt = "Greeting?", default = "hello" }

[[steps]]
type = "command"
command = "echo '{{greeting}} {{project_name}}' > order.txt"
"""

ADDON = """
[template]
name = "addon"
description = "Optional addon"
category = "extras"

[dependencies]
requires_templates = ["base"]

[[steps]]
type = "command"
command = "test -f unblock && echo addon >> order.txt"
"""


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    root = tmp_path / "templates"
    for name, content in (("base", BASE), ("addon", ADDON)):
        (root / name).mkdir(parents=True)
        (root / name / "template.toml").write_text(content)
    return root


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


def _invoke(*args: str | Path) -> Result:
    return CliRunner().invoke(main, [str(a) for a in args])


class TestNew:
    def test_scaffolds_with_dependencies(
        self, templates_dir: Path, project_dir: Path
    ) -> None:
        (project_dir / "unblock").write_text("")
        result = _invoke(
            "new", "demo", "-t", "addon",
            "--var", "greeting=hi",
            "--templates-dir", templates_dir,
            "--project-dir", project_dir,
        )
        assert result.exit_code == 0, result.output
        assert "scaffolded successfully" in result.output
        assert (project_dir / "order.txt").read_text().split() == ["hi", "demo", "addon"]

        recipe = json.loads((project_dir / ".tforge-recipe.json").read_text())
        assert recipe["project_name"] == "demo"
        assert recipe["templates"] == ["addon", "base"]
        assert recipe["parameters"] == {"greeting": "hi"}

    def test_uses_parameter_defaults(self, templates_dir: Path, project_dir: Path) -> None:
        result = _invoke(
            "new", "demo", "-t", "base",
            "--templates-dir", templates_dir,
            "--project-dir", project_dir,
        )
        assert result.exit_code == 0, result.output
        assert (project_dir / "order.txt").read_text() == "hello demo\n"

    def test_unknown_template(self, templates_dir: Path, project_dir: Path) -> None:
        result = _invoke(
            "new", "demo", "-t", "nope",
            "--templates-dir", templates_dir,
            "--project-dir", project_dir,
        )
        assert result.exit_code == 1
        assert "'nope' not found" in result.output

    def test_bad_var(self, templates_dir: Path, project_dir: Path) -> None:
        result = _invoke(
            "new", "demo", "-t", "base", "--var", "novalue",
            "--templates-dir", templates_dir,
        )
        assert result.exit_code == 2
        assert "KEY=VALUE" in result.output

    def test_missing_tool(self, tmp_path: Path, project_dir: Path) -> None:
        root = tmp_path / "tools"
        (root / "needs").mkdir(parents=True)
        (root / "needs" / "template.toml").write_text(
            '[template]\nname = "needs"\n[dependencies]\n'
            'required_tools = ["definitely-not-a-real-tool-xyz"]\n'
        )
        result = _invoke(
            "new", "demo", "-t", "needs",
            "--templates-dir", root,
            "--project-dir", project_dir,
        )
        assert result.exit_code == 1
        assert "Missing required tools" in result.output
        assert not (project_dir / ".tforge-state.json").exists()

    def test_earlier_templates_dir_wins(
        self, tmp_path: Path, templates_dir: Path, project_dir: Path
    ) -> None:
        override = tmp_path / "override"
        (override / "base").mkdir(parents=True)
        (override / "base" / "template.toml").write_text(
            '[template]\nname = "base"\n[[steps]]\ntype = "command"\n'
            'command = "echo override > order.txt"\n'
        )
        (project_dir / "unblock").write_text("")
        result = _invoke(
            "new", "demo", "-t", "addon",
            "--templates-dir", override,
            "--templates-dir", templates_dir,
            "--project-dir", project_dir,
        )
        assert result.exit_code == 0, result.output
        assert (project_dir / "order.txt").read_text().split() == ["override", "addon"]

    def test_recipe_write_failure(self, templates_dir: Path, project_dir: Path) -> None:
        (project_dir / ".tforge-recipe.json").mkdir()
        result = _invoke(
            "new", "demo", "-t", "base",
            "--templates-dir", templates_dir,
            "--project-dir", project_dir,
        )
        assert result.exit_code == 1
        assert "Failed to save recipe" in result.output
        assert not (project_dir / ".tforge-state.json").exists()

    def test_empty_templates_dir(self, tmp_path: Path, project_dir: Path) -> None:
        result = _invoke(
            "new", "demo", "-t", "base",
            "--templates-dir", tmp_path / "empty",
            "--project-dir", project_dir,
        )
        assert result.exit_code == 1
        assert "No templates found" in result.output


class TestResumeAndStatus:
    def test_failure_then_resume(self, templates_dir: Path, project_dir: Path) -> None:
        result = _invoke(
            "new", "demo", "-t", "addon",
            "--templates-dir", templates_dir,
            "--project-dir", project_dir,
        )
        assert result.exit_code == 1
        assert "Pipeline failed" in result.output
        assert "[addon] step 1 (command) failed" in result.output

        state = PipelineState.load(project_dir / ".tforge-state.json")
        assert state.get("base", 0) == StepState.completed()
        assert state.get("addon", 0).message is not None

        status = _invoke("status", "--templates-dir", templates_dir, "--project-dir", project_dir)
        assert status.exit_code == 0, status.output
        assert "failed" in status.output
        assert "complete" in status.output

        (project_dir / "unblock").write_text("")
        resumed = _invoke("resume", "--templates-dir", templates_dir, "--project-dir", project_dir)
        assert resumed.exit_code == 0, resumed.output
        assert "Resume completed" in resumed.output
        # base was not re-run
        assert (project_dir / "order.txt").read_text().split() == ["hello", "demo", "addon"]

    def test_resume_without_state(self, templates_dir: Path, project_dir: Path) -> None:
        result = _invoke("resume", "--templates-dir", templates_dir, "--project-dir", project_dir)
        assert result.exit_code == 1
        assert "No pipeline state found" in result.output

    def test_status_without_project(self, templates_dir: Path, project_dir: Path) -> None:
        result = _invoke("status", "--templates-dir", templates_dir, "--project-dir", project_dir)
        assert result.exit_code == 0
        assert "No active tforge project" in result.output


class TestBrowse:
    def test_list(self, templates_dir: Path) -> None:
        result = _invoke("list", "--templates-dir", templates_dir)
        assert result.exit_code == 0, result.output
        assert "base" in result.output
        assert "addon" in result.output

    def test_search(self, templates_dir: Path) -> None:
        result = _invoke("search", "layout", "--templates-dir", templates_dir)
        assert result.exit_code == 0, result.output
        assert "base" in result.output
        assert "addon" not in result.output

    def test_search_no_match(self, templates_dir: Path) -> None:
        result = _invoke("search", "zzz", "--templates-dir", templates_dir)
        assert "No templates matched" in result.output
