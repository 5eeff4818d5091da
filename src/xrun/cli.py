"""xrun CLI - filtered test assembly runner.

Main entry point for the xrun command.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import (
    XRunConfig,
    format_config_for_display,
    get_config_path,
    load_config,
    save_config,
)
from .filters import FilterCollection, TestFilter, parse_filter
from .reports import ResultJargon, ResultsWriter, ResultsTree
from .runner import RunCoordinator
from .testing import ModuleTestExecutor, TestAssemblyInfo
from .utils.errors import XRunError, handle_exception, set_debug_mode
from .utils.logging import setup_logging

console = Console()

JARGON_CHOICES = [j.value for j in ResultJargon if j != ResultJargon.MISSING]


def filter_options(func):
    """Shared filter flags for run and list."""
    options = [
        click.option("-f", "--filter", "rules", multiple=True, metavar="RULE",
                     help="Filter rule, e.g. '!trait:Category=Slow' (repeatable)"),
        click.option("--method", "methods", multiple=True, help="Run only this test method"),
        click.option("--class", "classes", multiple=True, help="Run only this test class"),
        click.option("--namespace", "namespaces", multiple=True, help="Run only this namespace"),
        click.option("--trait", "traits", multiple=True, metavar="NAME[=VALUE]",
                     help="Run only tests with this trait"),
        click.option("--skip-method", multiple=True, help="Skip this test method"),
        click.option("--skip-class", multiple=True, help="Skip this test class"),
        click.option("--skip-namespace", multiple=True, help="Skip this namespace"),
        click.option("--skip-trait", multiple=True, metavar="NAME[=VALUE]",
                     help="Skip tests with this trait"),
        click.option("--skip-assembly", multiple=True, metavar="NAME",
                     help="Skip an assembly by bare file name"),
        click.option("--config", "config_path", type=click.Path(path_type=Path),
                     help="Config file (default: ./xrun.toml)"),
        click.option("--trace", is_flag=True, help="Log every filter decision"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _split_trait(text: str) -> tuple[str, str | None]:
    name, _, value = text.partition("=")
    return name.strip(), value.strip() or None


def build_filters(config: XRunConfig, **flags) -> FilterCollection:
    """Config rules first, then -f rules, then the per-kind flags.

    Note that allow-list flags combine with AND: each one excludes
    whatever it does not match.
    """
    collection = config.filters.build_collection()
    for rule in flags.get("rules", ()):
        collection.add(parse_filter(rule))

    for exclude, methods, classes, namespaces, traits in (
        (False, "methods", "classes", "namespaces", "traits"),
        (True, "skip_method", "skip_class", "skip_namespace", "skip_trait"),
    ):
        for name in flags.get(methods, ()):
            collection.add(TestFilter.by_test_name(name, exclude))
        for name in flags.get(classes, ()):
            collection.add(TestFilter.by_class_name(name, exclude))
        for name in flags.get(namespaces, ()):
            collection.add(TestFilter.by_namespace(name, exclude))
        for text in flags.get(traits, ()):
            trait_name, trait_value = _split_trait(text)
            collection.add(TestFilter.by_trait(trait_name, trait_value, exclude))

    # Module assemblies name their classes "<assembly>.<Class>", so the
    # namespace rule drops the assembly's tests and the assembly name gates it.
    for name in flags.get("skip_assembly", ()):
        collection.add(TestFilter.by_namespace(name, exclude=True, assembly_name=name))

    return collection


def _prepare(config_path: Path | None, trace: bool) -> tuple[XRunConfig, logging.Logger]:
    config = load_config(config_path)
    setup_logging(config.logging.level, Console(stderr=True))
    if trace:
        config.logging.show_filter_trace = True
    return config, logging.getLogger("xrun")


def _summary_table(coordinator: RunCoordinator) -> Table:
    table = Table(title="Test run summary", show_header=True, header_style="bold")
    table.add_column("Total", justify="right")
    table.add_column("Passed", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Filtered", justify="right", style="dim")
    table.add_column("Assembly errors", justify="right", style="red")
    table.add_row(
        str(coordinator.total_tests),
        str(coordinator.passed_tests),
        str(coordinator.failed_tests),
        str(coordinator.skipped_tests),
        str(coordinator.filtered_tests),
        str(len(coordinator.failed_assemblies)),
    )
    return table


@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show version and exit")
@click.option("--debug", "-d", is_flag=True, help="Enable debug mode with verbose error output")
@click.pass_context
def main(ctx: click.Context, version: bool, debug: bool) -> None:
    """xrun - run test assemblies through include/exclude filters.

    Filters select tests by method, class, namespace or trait and
    produce an xunit (or NUnit) results report.
    """
    if debug:
        set_debug_mode(True)

    if version:
        console.print(f"xrun version {__version__}")
        return

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@main.command()
@click.argument("assemblies", nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False, path_type=Path))
@filter_options
@click.option("--jargon", type=click.Choice(JARGON_CHOICES), default=None,
              help="Report dialect (default from config: xunit)")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Directory for the results file")
@click.option("--results-file", help="Results file name")
def run(
    assemblies: tuple[Path, ...],
    config_path: Path | None,
    trace: bool,
    jargon: str | None,
    output_dir: Path | None,
    results_file: str | None,
    **flags,
) -> None:
    """Run the tests in one or more assemblies.

    \b
    Examples:
        xrun run tests/Foo.Tests.py
        xrun run tests/*.py --skip-trait Category=Slow
        xrun run tests/Foo.Tests.py -f '!class:Foo.Tests.TestFlaky' --jargon nunit-v3
    """
    try:
        config, log = _prepare(config_path, trace)
        filters = build_filters(config, **flags)
    except XRunError as e:
        handle_exception(console, e, "filter setup")
        return

    if filters:
        console.print(f"[dim]Filters: {', '.join(str(f) for f in filters)}[/dim]")

    coordinator = RunCoordinator(
        executor=ModuleTestExecutor(),
        filters=filters,
        on_info=log.info,
        on_error=log.error,
        on_trace=log.info if config.logging.show_filter_trace else log.debug,
        assembly_timeout=config.run.assembly_timeout or None,
    )
    tree = coordinator.run(TestAssemblyInfo(full_path=path) for path in assemblies)

    if output_dir:
        config.report.results_dir = str(output_dir)
    if results_file:
        config.report.results_file = results_file
    written = _write_report(tree, jargon or config.report.jargon, config.report.results_path)

    console.print()
    console.print(_summary_table(coordinator))
    if written:
        console.print(f"[dim]Results: {written}[/dim]")

    failed = coordinator.failed_tests > 0 or bool(coordinator.failed_assemblies)
    if failed and config.run.fail_on_error:
        sys.exit(1)


def _write_report(tree: ResultsTree, jargon: str, path: Path) -> Path | None:
    writer = ResultsWriter()
    return writer.write(tree, ResultJargon.parse(jargon), path)


@main.command("list")
@click.argument("assemblies", nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False, path_type=Path))
@filter_options
def list_tests(
    assemblies: tuple[Path, ...],
    config_path: Path | None,
    trace: bool,
    **flags,
) -> None:
    """Show discovered tests and whether the filters include them.

    Nothing is executed.
    """
    try:
        config, log = _prepare(config_path, trace)
        filters = build_filters(config, **flags)
    except XRunError as e:
        handle_exception(console, e, "filter setup")
        return

    executor = ModuleTestExecutor()
    table = Table(show_header=True, header_style="bold")
    table.add_column("Test")
    table.add_column("Traits", style="dim")
    table.add_column("Status")

    included = excluded = 0
    for path in assemblies:
        assembly = TestAssemblyInfo(full_path=path)
        if filters.is_excluded_assembly(assembly, log.info if trace else None):
            table.add_row(f"[bold]{assembly.name}[/bold]", "", "[yellow]assembly excluded[/yellow]")
            continue

        try:
            cases = list(executor.discover(assembly))
        except Exception as e:
            log.error(f"Failed to discover tests in '{path}': {e}")
            continue

        for case in cases:
            traits = ", ".join(
                f"{name}={'|'.join(values)}" if values else name
                for name, values in (case.traits or {}).items()
            )
            if filters.is_excluded(case, log.info if trace else None):
                excluded += 1
                table.add_row(case.display_name, traits, "[yellow]excluded[/yellow]")
            else:
                included += 1
                table.add_row(case.display_name, traits, "[green]included[/green]")

    console.print(table)
    console.print(f"[bold]{included}[/bold] included, [bold]{excluded}[/bold] excluded")


@main.group()
def config() -> None:
    """View and edit xrun configuration."""


@config.command("show")
@click.option("--config", "config_path", type=click.Path(path_type=Path))
def config_show(config_path: Path | None) -> None:
    """Show the effective configuration."""
    console.print(format_config_for_display(load_config(config_path)), markup=False)


@config.command("get")
@click.argument("key")
@click.option("--config", "config_path", type=click.Path(path_type=Path))
def config_get(key: str, config_path: Path | None) -> None:
    """Print one value, e.g. 'report.jargon'."""
    value = load_config(config_path).get(key)
    if value is None:
        console.print(f"[red]Unknown key: {key}[/red]")
        sys.exit(1)
    console.print(str(value), markup=False)


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--config", "config_path", type=click.Path(path_type=Path))
def config_set(key: str, value: str, config_path: Path | None) -> None:
    """Set one value and save the config file."""
    path = config_path or get_config_path()
    cfg = load_config(path)
    if not cfg.set(key, value):
        console.print(f"[red]Unknown key: {key}[/red]")
        sys.exit(1)
    if not save_config(cfg, path):
        console.print(f"[red]Failed to save {path}[/red]")
        sys.exit(1)
    console.print(f"[green]✓[/green] {key} = {cfg.get(key)}")


if __name__ == "__main__":
    main()
