from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from pkgscout.models.analysis import PackageExportSizes, PackageStats
from pkgscout.models.package import PackageDescriptor
from pkgscout.registry.listing import top_files
from pkgscout.services.formatting import format_bytes, format_ms


def _flag(value: bool | tuple[str, ...]) -> str:
    if isinstance(value, tuple):
        return ", ".join(value) or "no"
    return "yes" if value else "no"


def _stats_panel(stats: PackageStats) -> Panel:
    body = (
        f"Size: [bold]{format_bytes(stats.size)}[/bold]\n"
        f"Gzip Size: [bold]{format_bytes(stats.gzip_size)}[/bold]\n"
        f"Parse Time: [bold]{format_ms(stats.parse_time)}[/bold]\n"
        f"Dependencies: [bold]{stats.dependency_count}[/bold]\n"
        f"Peer Dependencies: [bold]{escape(', '.join(stats.peer_dependencies)) or '-'}[/bold]\n"
        f"ES Module Entry: [bold]{_flag(stats.has_js_module)}[/bold]\n"
        f"jsnext:main: [bold]{_flag(stats.has_js_next)}[/bold]\n"
        f"type=module: [bold]{_flag(stats.is_module_type)}[/bold]\n"
        f"Side Effects: [bold]{escape(_flag(stats.has_side_effects))}[/bold]"
    )
    title = f"{escape(stats.name)}@{escape(stats.version)}"
    if stats.is_approximate:
        # Sandbox figures are placeholders, never present them as measured.
        return Panel(body, title=f"{title} (approximate)", border_style="yellow")
    return Panel(body, title=title, border_style="blue")


def _assets_table(stats: PackageStats) -> Table:
    table = Table(title="Assets", header_style="bold cyan")
    table.add_column("Name")
    table.add_column("Type", justify="center")
    table.add_column("Size", justify="right")
    table.add_column("Gzip", justify="right")
    for asset in stats.assets:
        table.add_row(escape(asset.name), asset.type.value, format_bytes(asset.size), format_bytes(asset.gzip_size))
    return table


def _dependency_table(stats: PackageStats) -> Table:
    table = Table(title="Dependency Sizes (approximate)", header_style="bold magenta")
    table.add_column("Dependency")
    table.add_column("Size", justify="right")
    for dep in sorted(stats.dependency_sizes, key=lambda d: d.approximate_size, reverse=True):
        table.add_row(escape(dep.name), format_bytes(dep.approximate_size))
    return table


def render_stats(console: Console, stats: PackageStats) -> None:
    console.print(_stats_panel(stats))
    console.print(_assets_table(stats))
    if stats.dependency_sizes:
        console.print(_dependency_table(stats))


def export_sizes_table(exports: PackageExportSizes, top_n: int) -> Table:
    table = Table(title=f"Export Sizes: {escape(exports.name)}@{escape(exports.version)}", header_style="bold yellow")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("Gzip", justify="right")
    ranked = sorted(exports.assets, key=lambda asset: asset.size, reverse=True)
    for asset in ranked[:top_n]:
        table.add_row(escape(asset.path), format_bytes(asset.size), format_bytes(asset.gzip_size))
    return table


def render_export_sizes(console: Console, exports: PackageExportSizes, top_n: int) -> None:
    console.print(export_sizes_table(exports, top_n))


def render_largest_files(console: Console, descriptor: PackageDescriptor, top_n: int) -> None:
    table = Table(title="Largest Files", header_style="bold yellow")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    for entry in top_files(descriptor.file_entries(), top_n):
        table.add_row(escape(entry.path), format_bytes(entry.size))
    console.print(table)
