"""Package analysis orchestration.

Two strategies produce a ``PackageStats``:

* CDN (default): download the package files into a virtual file set, bundle
  them from the entry point, minify, and measure the result.
* Sandbox (opt-in via ``useWebContainer``): install the package with a real
  package manager.  The build step is not run, so its sizes are fixed
  placeholders and the stats are tagged ``Measurement.APPROXIMATE``; only the
  manifest-derived fields (dependency count, module flags) are real.

Every error reaches the caller as ``Err(AnalysisError)`` stamped with the
requested package name and version.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from types import TracebackType

from result import Err, Ok, Result

from pkgscout.bundle.bundler import Bundler
from pkgscout.config.defaults import default_config
from pkgscout.config.schema import AnalyzerConfig
from pkgscout.models.analysis import (
    AnalysisError,
    AnalysisErrorCode,
    AnalysisResult,
    Asset,
    DependencySize,
    ExportAsset,
    ExportSizesResult,
    PackageExportSizes,
    PackageStats,
)
from pkgscout.models.enums import AssetType, Measurement, ModuleType
from pkgscout.models.package import LATEST, PackageDescriptor, VirtualFileSet, package_spec
from pkgscout.registry.source import PackageSource
from pkgscout.sandbox.environment import NpmSandbox, SandboxEnvironment, sandbox_session, write_package_json
from pkgscout.services.fanout import collect_ok, gather_results
from pkgscout.services.resolver import resolve
from pkgscout.services.sizes import parse_time

logger = logging.getLogger(__name__)

DEFAULT_ENTRY = "index.js"
SYNTHETIC_ENTRY = "entry.js"
EXPORT_EXTENSIONS: tuple[str, ...] = (".js", ".mjs", ".ts")

# Sandbox figures stand in for a build that is not performed.
PLACEHOLDER_SIZE = 50_000
PLACEHOLDER_GZIP_SIZE = 15_000


def _side_effects_flag(descriptor: PackageDescriptor) -> bool | tuple[str, ...]:
    if isinstance(descriptor.side_effects, tuple):
        return descriptor.side_effects
    return descriptor.side_effects is not False


def _build_stats(
    descriptor: PackageDescriptor,
    size: int,
    gzip_size: int,
    *,
    parse_time_ms: float | None = None,
    dependency_sizes: list[DependencySize] | None = None,
    measurement: Measurement = Measurement.MEASURED,
) -> PackageStats:
    return PackageStats(
        name=descriptor.name,
        version=descriptor.version,
        size=size,
        gzip_size=gzip_size,
        parse_time=parse_time_ms,
        dependency_count=len(descriptor.dependencies),
        has_js_next=descriptor.jsnext_main is not None,
        has_js_module=descriptor.module is not None,
        is_module_type=descriptor.type is ModuleType.MODULE,
        has_side_effects=_side_effects_flag(descriptor),
        peer_dependencies=list(descriptor.peer_dependencies),
        dependency_sizes=dependency_sizes or [],
        assets=[Asset(name="main", size=size, gzip_size=gzip_size, type=AssetType.JS)],
        measurement=measurement,
    )


def _unused_entry_name(files: VirtualFileSet) -> str:
    # A package may ship its own entry.js; never shadow a real file.
    name, counter = SYNTHETIC_ENTRY, 0
    while name in files:
        counter += 1
        name = f"entry_{counter}.js"
    return name


class PackageAnalyzer:
    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        *,
        source: PackageSource | None = None,
        bundler: Bundler | None = None,
        sandbox: SandboxEnvironment | None = None,
    ) -> None:
        self.config = config or default_config()
        self._source = source or PackageSource(self.config.cdn)
        self._bundler = bundler or Bundler()
        self._sandbox = sandbox or NpmSandbox()

    async def aclose(self) -> None:
        await self._bundler.dispose()
        await self._source.aclose()

    async def __aenter__(self) -> PackageAnalyzer:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def analyze_package(self, name: str, version: str | None = None) -> AnalysisResult:
        requested = version or LATEST
        await self._bundler.ready()

        if self.config.use_sandbox:
            if self._sandbox.supports():
                return await self.analyze_with_sandbox(name, requested)
            logger.warning("Sandbox analysis requested but not supported here; falling back to the CDN")
        result = await self._analyze_with_cdn(name, requested)
        return result.map_err(lambda err: replace(err, package=name, version=requested))

    async def _analyze_with_cdn(self, name: str, version: str) -> AnalysisResult:
        info = await self._source.get_package_info(name, version)
        if isinstance(info, Err):
            return info
        descriptor = info.ok_value
        files = await self._source.download_files(descriptor)

        entry = await self._source.resolve_main_file(descriptor) or DEFAULT_ENTRY
        bundle_files = files
        if entry not in files:
            synthesized = self._synthesize_entry(files)
            if isinstance(synthesized, Err):
                return synthesized
            entry = _unused_entry_name(files)
            bundle_files = {**files, entry: synthesized.ok_value}

        bundled = await self._bundler.bundle(entry, bundle_files)
        if isinstance(bundled, Err):
            return bundled
        minified = await self._bundler.minify_code(bundled.ok_value.code, self.config.minifier)

        parse_time_ms = await parse_time(minified.code) if self.config.debug else None
        dependency_sizes = await self._dependency_sizes(descriptor) if self.config.include_dependency_sizes else []

        return Ok(
            _build_stats(
                descriptor,
                minified.size,
                minified.gzip_size,
                parse_time_ms=parse_time_ms,
                dependency_sizes=dependency_sizes,
            )
        )

    def _synthesize_entry(self, files: VirtualFileSet) -> Result[str, AnalysisError]:
        """Re-export the configured subpaths (or ``index.js``) from a generated entry."""
        targets = self.config.custom_imports or [DEFAULT_ENTRY]
        if not any(resolve(f"./{target}", SYNTHETIC_ENTRY, files) for target in targets):
            return Err(
                AnalysisError(
                    code=AnalysisErrorCode.ENTRY_POINT_UNRESOLVED,
                    message=f"No usable entry file found (tried {', '.join(targets)})",
                )
            )
        return Ok("\n".join(f"export * from './{target}';" for target in targets) + "\n")

    async def _dependency_sizes(self, descriptor: PackageDescriptor) -> list[DependencySize]:
        """Approximate each dependency by the total size of its listed files."""

        async def _measure(dependency: str, wanted: str) -> Result[DependencySize, AnalysisError]:
            info = await self._source.get_package_info(dependency, wanted)
            return info.map(
                lambda dep: DependencySize(
                    name=dep.name,
                    approximate_size=sum(entry.size for entry in dep.file_entries()),
                )
            )

        results = await gather_results(_measure(name, wanted) for name, wanted in descriptor.dependencies.items())
        return collect_ok(results, on_error=lambda err: logger.warning("Dependency size unavailable: %s", err))

    async def analyze_with_sandbox(self, name: str, version: str | None = None) -> AnalysisResult:
        requested = version or LATEST

        def _error(code: AnalysisErrorCode, message: str) -> Err[AnalysisError]:
            return Err(AnalysisError(code=code, message=message, package=name, version=requested))

        if not self._sandbox.supports():
            return _error(AnalysisErrorCode.SANDBOX_UNSUPPORTED, "Sandbox environment is not supported here")

        spec = package_spec(name, requested)
        async with sandbox_session(self._sandbox) as env:
            try:
                await write_package_json(env, {name: requested})
                exit_code = await env.spawn("npm", ["install", spec])
                if exit_code != 0:
                    return _error(AnalysisErrorCode.SANDBOX_FAILED, f"Failed to install package {spec}")
                manifest_text = await env.read_file(f"node_modules/{name}/package.json")
                await env.write_file(SYNTHETIC_ENTRY, self._import_stub(name))
            except OSError as exc:
                return _error(AnalysisErrorCode.SANDBOX_FAILED, f"Sandbox operation failed: {exc}")

        try:
            manifest = json.loads(manifest_text)
        except ValueError as exc:
            return _error(AnalysisErrorCode.INVALID_MANIFEST, f"Installed manifest is not valid JSON: {exc}")
        if not isinstance(manifest, dict):
            return _error(AnalysisErrorCode.INVALID_MANIFEST, "Installed manifest must be a JSON object")

        descriptor = PackageDescriptor.from_manifest(manifest, fallback_name=name, fallback_version=requested)
        return Ok(
            _build_stats(
                descriptor,
                PLACEHOLDER_SIZE,
                PLACEHOLDER_GZIP_SIZE,
                measurement=Measurement.APPROXIMATE,
            )
        )

    def _import_stub(self, name: str) -> str:
        if self.config.custom_imports:
            lines = [f"import '{name}/{target}';" for target in self.config.custom_imports]
        else:
            lines = [f"import '{name}';"]
        return "\n".join(lines) + "\n"

    async def get_package_export_sizes(self, name: str, version: str | None = None) -> ExportSizesResult:
        """Bundle and minify every script file of the package on its own.

        Files that fail are dropped (and logged when ``debug`` is set); the
        remaining assets come back in no particular order.
        """
        requested = version or LATEST
        await self._bundler.ready()

        info = await self._source.get_package_info(name, requested)
        if isinstance(info, Err):
            return info
        descriptor = info.ok_value
        files = await self._source.download_files(descriptor)

        candidates = [
            entry.path
            for entry in descriptor.file_entries()
            if entry.path.endswith(EXPORT_EXTENSIONS) and entry.path in files
        ]

        async def _measure(path: str) -> Result[ExportAsset, AnalysisError]:
            bundled = await self._bundler.bundle(path, files)
            if isinstance(bundled, Err):
                return bundled
            minified = await self._bundler.minify_code(bundled.ok_value.code, self.config.minifier)
            return Ok(ExportAsset(path=path, size=minified.size, gzip_size=minified.gzip_size, export_name=path))

        def _report(err: object) -> None:
            if self.config.debug:
                logger.warning("Failed to analyze export: %s", err)

        results = await gather_results(_measure(path) for path in candidates)
        assets = collect_ok(results, on_error=_report)
        return Ok(PackageExportSizes(name=descriptor.name, version=descriptor.version, assets=assets))
