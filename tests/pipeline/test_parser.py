"""Tests for template manifest parsing."""

from pathlib import Path

import pytest

from tforge.pipeline.errors import ManifestError
from tforge.pipeline.parser import parse_manifest_file, parse_manifest_string

COMMAND_TEMPLATE = """
[template]
name = "flutter-app"
description = "Flutter mobile application"
category = "mobile"
provider = "command"

[dependencies]
required_tools = ["flutter"]

[parameters]
org = { type = "string", prompt = "Organization name", default = "com.example" }

[[steps]]
type = "command"
command = "flutter create --org {{org}} {{project_name}}"
"""

CONDITIONAL_TEMPLATE = """
[template]
name = "firebase-flutter"
description = "Firebase for Flutter"
category = "integration"
provider = "command"

[dependencies]
required_tools = ["firebase"]
requires_templates = ["flutter-app"]

[parameters]
services = { type = "multi-select", prompt = "Services?", options = ["crashlytics", "auth"], default = ["crashlytics"] }

[[steps]]
type = "command"
command = "flutter pub add firebase_crashlytics"
condition = "services contains 'crashlytics'"
check = "grep -q firebase_crashlytics pubspec.yaml"
working_dir = "{{project_name}}"
"""


class TestParseManifest:
    def test_command_template(self) -> None:
        manifest = parse_manifest_string(COMMAND_TEMPLATE)
        assert manifest.name == "flutter-app"
        assert manifest.template.category == "mobile"
        assert manifest.template.provider == "command"
        assert manifest.dependencies.required_tools == ["flutter"]
        assert manifest.dependencies.requires_templates == []
        assert len(manifest.steps) == 1
        assert manifest.steps[0].step_type == "command"
        assert manifest.steps[0].condition is None
        assert manifest.parameters["org"].default == "com.example"

    def test_conditional_template(self) -> None:
        manifest = parse_manifest_string(CONDITIONAL_TEMPLATE)
        step = manifest.steps[0]
        assert manifest.dependencies.requires_templates == ["flutter-app"]
        assert step.condition == "services contains 'crashlytics'"
        assert step.check == "grep -q firebase_crashlytics pubspec.yaml"
        assert step.working_dir == "{{project_name}}"
        param = manifest.parameters["services"]
        assert param.param_type == "multi-select"
        assert param.options == ["crashlytics", "auth"]
        assert param.default_as_string() == "crashlytics"

    def test_minimal_manifest(self) -> None:
        manifest = parse_manifest_string('[template]\nname = "bare"\n')
        assert manifest.name == "bare"
        assert manifest.steps == []
        assert manifest.template.description == ""

    def test_git_and_bundled_steps(self) -> None:
        manifest = parse_manifest_string(
            """
[template]
name = "mixed"

[[steps]]
type = "git"
url = "https://example.com/repo.git"

[[steps]]
type = "bundled"
action = "overlay"
source = "files/"
"""
        )
        assert manifest.steps[0].url == "https://example.com/repo.git"
        assert manifest.steps[1].action == "overlay"
        assert manifest.steps[1].source == "files/"

    def test_unknown_step_type_accepted_at_load(self) -> None:
        manifest = parse_manifest_string(
            '[template]\nname = "x"\n[[steps]]\ntype = "rsync"\n'
        )
        assert manifest.steps[0].step_type == "rsync"

    def test_missing_required_step_field_accepted_at_load(self) -> None:
        manifest = parse_manifest_string(
            '[template]\nname = "x"\n[[steps]]\ntype = "command"\n'
        )
        assert manifest.steps[0].command is None


class TestParseErrors:
    def test_invalid_toml(self) -> None:
        with pytest.raises(ManifestError, match="parsing broken.toml"):
            parse_manifest_string("[template", source="broken.toml")

    def test_missing_name(self) -> None:
        with pytest.raises(ManifestError, match="name"):
            parse_manifest_string('[template]\ndescription = "x"\n')

    def test_step_without_type(self) -> None:
        with pytest.raises(ManifestError, match="step 1 has no type"):
            parse_manifest_string('[template]\nname = "x"\n[[steps]]\ncommand = "true"\n')

    @pytest.mark.parametrize("field", ["working_dir = 5", "check = true", "command = ['a']"])
    def test_non_string_step_field(self, field: str) -> None:
        content = f'[template]\nname = "x"\n[[steps]]\ntype = "command"\n{field}\n'
        with pytest.raises(ManifestError, match="step 1 field .* must be a string"):
            parse_manifest_string(content)

    @pytest.mark.parametrize(
        "deps", ['requires_templates = "base"', "required_tools = [1, 2]"]
    )
    def test_dependencies_must_be_string_lists(self, deps: str) -> None:
        content = f'[template]\nname = "x"\n[dependencies]\n{deps}\n'
        with pytest.raises(ManifestError, match="must be a list of strings"):
            parse_manifest_string(content)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError):
            parse_manifest_file(tmp_path / "template.toml")


class TestParseFile:
    def test_reads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "template.toml"
        path.write_text(COMMAND_TEMPLATE)
        assert parse_manifest_file(path).name == "flutter-app"
