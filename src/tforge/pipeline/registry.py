"""Template registry.

Collects manifests from ``<root>/<template>/template.toml`` directories
and answers lookup, browsing and dependency-expansion queries.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from tforge.pipeline.errors import TemplateNotFoundError
from tforge.pipeline.models import TemplateManifest
from tforge.pipeline.parser import parse_manifest_file

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "template.toml"


class TemplateRegistry:
    """An ordered, name-unique collection of template manifests."""

    def __init__(self, templates: Iterable[TemplateManifest] = ()) -> None:
        self._templates: list[TemplateManifest] = []
        for tmpl in templates:
            self._add(tmpl)
        self._sort()

    @classmethod
    def from_directory(cls, path: str | Path) -> TemplateRegistry:
        """Load every ``template.toml`` one level below *path*.

        A missing directory yields an empty registry.

        Raises:
            ManifestError: If a manifest cannot be parsed.
        """
        path = Path(path)
        if not path.is_dir():
            logger.debug("Template directory %s does not exist", path)
            return cls()
        templates = [
            parse_manifest_file(entry / MANIFEST_FILENAME)
            for entry in sorted(path.iterdir())
            if (entry / MANIFEST_FILENAME).is_file()
        ]
        logger.debug("Loaded %d template(s) from %s", len(templates), path)
        return cls(templates)

    @property
    def templates(self) -> list[TemplateManifest]:
        return list(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def merge(self, other: TemplateRegistry) -> None:
        """Add templates from *other* whose names are not already present."""
        for tmpl in other.templates:
            self._add(tmpl)
        self._sort()

    def find(self, name: str) -> TemplateManifest | None:
        for tmpl in self._templates:
            if tmpl.name == name:
                return tmpl
        return None

    def by_category(self, category: str) -> list[TemplateManifest]:
        return [t for t in self._templates if t.template.category == category]

    def categories(self) -> list[str]:
        return sorted({t.template.category for t in self._templates})

    def search(self, query: str) -> list[TemplateManifest]:
        """Return templates whose name, category or description contain *query*.

        Matching is case-insensitive.
        """
        needle = query.lower()
        return [
            t
            for t in self._templates
            if needle in t.name.lower()
            or needle in t.template.category.lower()
            or needle in t.template.description.lower()
        ]

    def expand_required(self, names: Iterable[str]) -> list[TemplateManifest]:
        """Return the named templates plus everything they transitively require.

        Selected templates come first, in the given order, followed by
        dependencies in the order they are discovered.  Duplicates are
        dropped.

        Raises:
            TemplateNotFoundError: If a selected template or one of its
                dependencies is not in the registry.
        """
        ordered: list[TemplateManifest] = []
        seen: set[str] = set()
        for name in names:
            if name in seen:
                continue
            tmpl = self.find(name)
            if tmpl is None:
                raise TemplateNotFoundError(name)
            seen.add(name)
            ordered.append(tmpl)

        idx = 0
        while idx < len(ordered):
            current = ordered[idx]
            for dep in current.dependencies.requires_templates:
                if dep in seen:
                    continue
                dep_tmpl = self.find(dep)
                if dep_tmpl is None:
                    raise TemplateNotFoundError(dep, required_by=current.name)
                seen.add(dep)
                ordered.append(dep_tmpl)
            idx += 1
        return ordered

    def _add(self, tmpl: TemplateManifest) -> None:
        if self.find(tmpl.name) is None:
            self._templates.append(tmpl)

    def _sort(self) -> None:
        self._templates.sort(key=lambda t: t.name)
