"""Detection of the external tools templates declare in ``required_tools``."""

from __future__ import annotations

import shutil
from typing import Iterable

from tforge.pipeline.models import TemplateManifest

_INSTALL_HINTS: dict[str, str] = {
    "flutter": "Install Flutter: https://docs.flutter.dev/get-started/install",
    "gcloud": "Install gcloud CLI: https://cloud.google.com/sdk/docs/install",
    "firebase": "Install Firebase CLI: npm install -g firebase-tools",
    "flutterfire": "Install FlutterFire CLI: dart pub global activate flutterfire_cli",
    "node": "Install Node.js: https://nodejs.org/",
    "npm": "Install Node.js: https://nodejs.org/",
    "npx": "Install Node.js: https://nodejs.org/",
    "cargo": "Install Rust: https://rustup.rs/",
    "docker": "Install Docker: https://docs.docker.com/get-docker/",
    "terraform": "Install Terraform: https://developer.hashicorp.com/terraform/install",
    "git": "Install Git: https://git-scm.com/downloads",
}

_DEFAULT_HINT = "Please install this tool and try again"


def check_tool(name: str) -> str | None:
    """Return the absolute path of executable *name*, or ``None`` if absent."""
    return shutil.which(name)


def install_hint(name: str) -> str:
    return _INSTALL_HINTS.get(name, _DEFAULT_HINT)


def missing_tools(templates: Iterable[TemplateManifest]) -> list[str]:
    """Return the sorted, unique required tools that are not on ``PATH``."""
    required = {
        tool for tmpl in templates for tool in tmpl.dependencies.required_tools
    }
    return sorted(tool for tool in required if check_tool(tool) is None)
