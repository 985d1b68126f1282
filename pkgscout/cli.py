from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click
from result import Err
from rich.console import Console

from pkgscout.config.loader import load_config, sample_config_json
from pkgscout.config.schema import AnalyzerConfig
from pkgscout.logging import configure_logging
from pkgscout.models.enums import CdnProvider, MinifierKind
from pkgscout.models.package import parse_package_spec
from pkgscout.registry.source import PackageSource
from pkgscout.services.analyzer import PackageAnalyzer
from pkgscout.services.summary import render_export_sizes, render_largest_files, render_stats

_CDN_CHOICES = [provider.value for provider in CdnProvider]
_MINIFIER_CHOICES = [kind.value for kind in MinifierKind]


def _load(config_path: Path | None) -> AnalyzerConfig:
    loaded = load_config(config_path)
    if isinstance(loaded, Err):
        raise click.ClickException(loaded.err_value)
    return loaded.ok_value


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None, help="Config JSON path.")
@click.option("--debug", is_flag=True, help="Verbose logging and parse-time measurement.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, debug: bool) -> None:
    """Measure the bundled size of npm packages without installing them."""
    config = _load(config_path)
    if debug:
        config.debug = True
    configure_logging(debug=config.debug)
    ctx.obj = config


@cli.command()
@click.argument("spec")
@click.option("--minifier", type=click.Choice(_MINIFIER_CHOICES), default=None)
@click.option("--cdn", type=click.Choice(_CDN_CHOICES), default=None)
@click.option("--custom-import", "custom_imports", multiple=True, help="Subpath to re-export from the entry.")
@click.option("--sandbox", is_flag=True, help="Install with npm instead of reading from the CDN (approximate).")
@click.option("--dependency-sizes", is_flag=True, help="Estimate the size of each dependency.")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.pass_obj
def analyze(
    config: AnalyzerConfig,
    spec: str,
    minifier: str | None,
    cdn: str | None,
    custom_imports: tuple[str, ...],
    sandbox: bool,
    dependency_sizes: bool,
    as_json: bool,
) -> None:
    """Bundle SPEC (name or name@version) and report its size."""
    if minifier:
        config.minifier = MinifierKind.from_str(minifier)
    if cdn:
        config.cdn = CdnProvider.from_str(cdn)
    if custom_imports:
        config.custom_imports = list(custom_imports)
    config.use_sandbox = config.use_sandbox or sandbox
    config.include_dependency_sizes = config.include_dependency_sizes or dependency_sizes

    name, version = parse_package_spec(spec)

    async def _run() -> None:
        async with PackageAnalyzer(config) as analyzer:
            result = await analyzer.analyze_package(name, version)
        if isinstance(result, Err):
            raise click.ClickException(str(result.err_value))
        stats = result.ok_value
        if as_json:
            click.echo(json.dumps(stats.to_dict(), indent=2))
        else:
            render_stats(Console(), stats)

    asyncio.run(_run())


@cli.command()
@click.argument("spec")
@click.option("--top", "top_n", type=click.IntRange(min=1), default=20, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.pass_obj
def exports(config: AnalyzerConfig, spec: str, top_n: int, as_json: bool) -> None:
    """Bundle every script file of SPEC on its own and rank them by size."""
    name, version = parse_package_spec(spec)

    async def _run() -> None:
        async with PackageAnalyzer(config) as analyzer:
            result = await analyzer.get_package_export_sizes(name, version)
        if isinstance(result, Err):
            raise click.ClickException(str(result.err_value))
        if as_json:
            click.echo(json.dumps(result.ok_value.to_dict(), indent=2))
        else:
            render_export_sizes(Console(), result.ok_value, top_n)

    asyncio.run(_run())


@cli.command()
@click.argument("spec")
@click.option("--top", "top_n", type=click.IntRange(min=1), default=15, show_default=True)
@click.pass_obj
def files(config: AnalyzerConfig, spec: str, top_n: int) -> None:
    """List the largest files the registry reports for SPEC."""
    name, version = parse_package_spec(spec)

    async def _run() -> None:
        async with PackageSource(config.cdn) as source:
            result = await source.get_package_info(name, version)
        if isinstance(result, Err):
            raise click.ClickException(str(result.err_value))
        render_largest_files(Console(), result.ok_value, top_n)

    asyncio.run(_run())


@cli.command("sample-config")
def sample_config() -> None:
    """Print the default configuration as JSON."""
    click.echo(sample_config_json())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
