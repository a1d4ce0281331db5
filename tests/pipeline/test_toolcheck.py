"""Tests for required-tool detection."""

from unittest.mock import patch

from tforge.pipeline.models import Dependencies, TemplateInfo, TemplateManifest
from tforge.pipeline.toolcheck import check_tool, install_hint, missing_tools


def _template(name: str, tools: list[str]) -> TemplateManifest:
    return TemplateManifest(
        template=TemplateInfo(name=name),
        dependencies=Dependencies(required_tools=tools),
    )


class TestToolCheck:
    def test_finds_shell(self) -> None:
        assert check_tool("sh") is not None

    def test_missing_tool(self) -> None:
        assert check_tool("definitely-not-a-real-tool-xyz") is None

    def test_known_hint(self) -> None:
        assert "rustup" in install_hint("cargo")
        assert install_hint("npx") == install_hint("node")

    def test_generic_hint(self) -> None:
        assert install_hint("obscure") == "Please install this tool and try again"

    def test_missing_tools_sorted_and_unique(self) -> None:
        templates = [
            _template("a", ["flutter", "firebase"]),
            _template("b", ["firebase", "gcloud", "sh"]),
        ]
        found = {"sh": "/bin/sh"}
        with patch("tforge.pipeline.toolcheck.shutil.which", side_effect=found.get):
            assert missing_tools(templates) == ["firebase", "flutter", "gcloud"]

    def test_nothing_missing(self) -> None:
        assert missing_tools([_template("a", ["sh"])]) == []
