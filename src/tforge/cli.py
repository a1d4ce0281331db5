"""CLI entry point for tforge.

Provides ``new``, ``resume``, ``status``, ``list`` and ``search``
sub-commands using Click and Rich for output formatting.  Parameter
values are taken from ``--var`` options and template defaults; there is
no interactive prompting.

Usage::

    tforge new my-app -t flutter-app -t firebase-flutter --var services=auth
    tforge status
    tforge resume --verbose
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Sequence

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tforge.config import Recipe, Settings
from tforge.pipeline.engine import PipelineEngine
from tforge.pipeline.errors import TemplateNotFoundError, TforgeError
from tforge.pipeline.models import TemplateManifest, bind_variables
from tforge.pipeline.registry import TemplateRegistry
from tforge.pipeline.state import PipelineState
from tforge.pipeline.toolcheck import install_hint, missing_tools

console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _format_error_chain(exc: BaseException) -> str:
    lines = [str(exc)]
    cause = exc.__cause__
    while cause is not None:
        lines.append(f"  caused by: {cause}")
        cause = cause.__cause__
    return "\n".join(lines)


def _fail(message: str, exc: BaseException | None = None) -> NoReturn:
    console.print(f"[red]{message}[/red]")
    if exc is not None:
        console.print(_format_error_chain(exc), markup=False, highlight=False)
    raise SystemExit(1)


def _parse_vars(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for raw in values:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got {raw!r}")
        parsed[key.strip()] = value
    return parsed


def _load_registry(templates_dirs: Sequence[Path]) -> TemplateRegistry:
    registry = TemplateRegistry()
    try:
        for templates_dir in templates_dirs:
            registry.merge(TemplateRegistry.from_directory(templates_dir))
    except TforgeError as exc:
        _fail("Failed to load templates:", exc)
    if not len(registry):
        searched = ", ".join(str(d) for d in templates_dirs)
        _fail(f"No templates found in {searched}.")
    return registry


def _default_parameters(templates: list[TemplateManifest]) -> dict[str, str]:
    defaults: dict[str, str] = {}
    for tmpl in templates:
        for key, param in tmpl.parameters.items():
            value = param.default_as_string()
            if value is not None:
                defaults.setdefault(key, value)
    return defaults


@click.group()
@click.version_option(package_name="tforge")
def main() -> None:
    """tforge: scaffold projects from composable templates."""


@main.command()
@click.argument("name")
@click.option(
    "--template",
    "-t",
    "template_names",
    multiple=True,
    required=True,
    help="Template to apply (repeatable).",
)
@click.option(
    "--var",
    "variables",
    multiple=True,
    callback=_parse_vars,
    help="Parameter value as KEY=VALUE (repeatable).",
)
@click.option(
    "--templates-dir",
    "templates_dirs",
    type=click.Path(file_okay=False, path_type=Path),
    multiple=True,
    help="Directory of template manifests (repeatable, earlier wins).",
)
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Directory the project is created in.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def new(
    name: str,
    template_names: tuple[str, ...],
    variables: dict[str, str],
    templates_dirs: tuple[Path, ...],
    project_dir: Path,
    verbose: bool,
) -> None:
    """Create a new project from templates."""
    _setup_logging(verbose)
    settings = Settings.from_env()
    registry = _load_registry(templates_dirs or settings.templates_dirs)

    try:
        templates = registry.expand_required(template_names)
    except TemplateNotFoundError as exc:
        _fail("Template selection failed:", exc)

    missing = missing_tools(templates)
    if missing:
        console.print("[bold red]Missing required tools:[/bold red]")
        for tool in missing:
            console.print(f"  - {tool}: {install_hint(tool)}")
        _fail("Install missing tools and run the command again.")

    parameters = _default_parameters(templates)
    parameters.update(variables)
    bindings = bind_variables(name, parameters)
    _print_recipe_summary(name, templates, bindings)

    recipe_path = settings.recipe_path(project_dir)
    state_path = settings.state_path(project_dir)
    recipe = Recipe(
        project_name=name,
        templates=[t.name for t in templates],
        parameters=parameters,
    )
    try:
        project_dir.mkdir(parents=True, exist_ok=True)
        recipe.save_to_file(recipe_path)
    except (OSError, TforgeError) as exc:
        _fail("Failed to save recipe:", exc)

    engine = PipelineEngine(project_dir)
    try:
        engine.run_with_state(templates, bindings, state_path, resume=False)
    except TforgeError as exc:
        _fail(
            "Pipeline failed. Run `tforge status` for details "
            "and `tforge resume` to retry.",
            exc,
        )

    console.print(
        f"[bold green]Project '{name}' scaffolded successfully.[/bold green]"
    )
    console.print(f"Recipe saved: {recipe_path}")
    console.print(f"State saved: {state_path}")


@main.command()
@click.option(
    "--templates-dir",
    "templates_dirs",
    type=click.Path(file_okay=False, path_type=Path),
    multiple=True,
    help="Directory of template manifests (repeatable, earlier wins).",
)
@click.option(
    "--project-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    help="Project directory containing the state file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def resume(
    templates_dirs: tuple[Path, ...], project_dir: Path, verbose: bool
) -> None:
    """Resume execution from the last failed step."""
    _setup_logging(verbose)
    settings = Settings.from_env()
    state_path = settings.state_path(project_dir)
    if not state_path.exists():
        _fail(
            f"No pipeline state found at {state_path}. "
            "Run `tforge new <name>` first."
        )

    registry = _load_registry(templates_dirs or settings.templates_dirs)
    try:
        recipe = Recipe.load_from_file(settings.recipe_path(project_dir))
        templates = _recipe_templates(recipe, registry)
    except TforgeError as exc:
        _fail("Failed to load recipe:", exc)

    bindings = bind_variables(recipe.project_name, recipe.parameters)
    console.print(
        f"[bold green]Resuming project:[/bold green] {recipe.project_name}"
    )
    engine = PipelineEngine(project_dir)
    try:
        engine.run_with_state(templates, bindings, state_path, resume=True)
    except TforgeError as exc:
        _fail("Resume failed. See `tforge status` for details.", exc)

    console.print("[bold green]Resume completed successfully.[/bold green]")


@main.command()
@click.option(
    "--templates-dir",
    "templates_dirs",
    type=click.Path(file_okay=False, path_type=Path),
    multiple=True,
    help="Directory of template manifests (repeatable, earlier wins).",
)
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Project directory containing the state file.",
)
def status(templates_dirs: tuple[Path, ...], project_dir: Path) -> None:
    """Show the current project's execution state."""
    settings = Settings.from_env()
    recipe_path = settings.recipe_path(project_dir)
    if not recipe_path.exists():
        console.print(f"No active tforge project found in {project_dir}.")
        console.print("Run `tforge new <name>` to start a project.")
        return

    registry = _load_registry(templates_dirs or settings.templates_dirs)
    try:
        recipe = Recipe.load_from_file(recipe_path)
        state = PipelineState.load(settings.state_path(project_dir))
    except TforgeError as exc:
        _fail("Failed to load project state:", exc)

    console.print(f"[bold]Project:[/bold] {recipe.project_name}")
    table = Table(title="Template status")
    table.add_column("Template", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")

    for template_name in recipe.templates:
        tmpl = registry.find(template_name)
        if tmpl is None:
            table.add_row(template_name, "[red]missing[/red]", "not in local registry")
            continue
        progress = state.progress(template_name, len(tmpl.steps))
        counts = f"{progress.completed}/{progress.total}"
        if progress.failed_step is not None:
            table.add_row(
                template_name,
                "[red]failed[/red]",
                f"step {progress.failed_step}: {progress.failure_message}",
            )
        elif progress.is_complete:
            table.add_row(template_name, "[green]complete[/green]", counts)
        else:
            table.add_row(template_name, "[yellow]in progress[/yellow]", counts)

    console.print(table)


@main.command(name="list")
@click.option(
    "--templates-dir",
    "templates_dirs",
    type=click.Path(file_okay=False, path_type=Path),
    multiple=True,
    help="Directory of template manifests (repeatable, earlier wins).",
)
def list_templates(templates_dirs: tuple[Path, ...]) -> None:
    """List all available templates."""
    registry = _load_registry(templates_dirs or Settings.from_env().templates_dirs)
    for category in registry.categories():
        table = Table(title=f"{category or 'uncategorized'} templates")
        table.add_column("Name", style="cyan")
        table.add_column("Description")
        for tmpl in registry.by_category(category):
            table.add_row(tmpl.name, tmpl.template.description)
        console.print(table)


@main.command()
@click.argument("query")
@click.option(
    "--templates-dir",
    "templates_dirs",
    type=click.Path(file_okay=False, path_type=Path),
    multiple=True,
    help="Directory of template manifests (repeatable, earlier wins).",
)
def search(query: str, templates_dirs: tuple[Path, ...]) -> None:
    """Search templates by name, category or description."""
    registry = _load_registry(templates_dirs or Settings.from_env().templates_dirs)
    matches = registry.search(query)
    if not matches:
        console.print(f"No templates matched query '{query}'.")
        return

    table = Table(title="Search results")
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Description")
    for tmpl in matches:
        table.add_row(tmpl.name, tmpl.template.category, tmpl.template.description)
    console.print(table)


def _recipe_templates(
    recipe: Recipe, registry: TemplateRegistry
) -> list[TemplateManifest]:
    templates: list[TemplateManifest] = []
    seen: set[str] = set()
    for name in recipe.templates:
        if name in seen:
            continue
        seen.add(name)
        tmpl = registry.find(name)
        if tmpl is None:
            raise TemplateNotFoundError(name)
        templates.append(tmpl)
    return templates


def _print_recipe_summary(
    name: str, templates: list[TemplateManifest], bindings: dict[str, str]
) -> None:
    table = Table(title=f"Project: {name}")
    table.add_column("Template", style="cyan")
    table.add_column("Category")
    for tmpl in templates:
        table.add_row(tmpl.name, tmpl.template.category)
    console.print(table)
    console.print(f"[bold]Parameters:[/bold] {len(bindings) - 1}")


if __name__ == "__main__":
    main()
