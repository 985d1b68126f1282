from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from result import Err, Ok

from pkgscout.bundle.bundler import Bundler
from pkgscout.bundle.engine import BuildOutput, BundlerEngine, GraphEngine, LoadHook, ResolveHook
from pkgscout.config.schema import AnalyzerConfig
from pkgscout.models.analysis import AnalysisErrorCode
from pkgscout.models.enums import Measurement
from pkgscout.services.analyzer import PLACEHOLDER_GZIP_SIZE, PLACEHOLDER_SIZE, PackageAnalyzer
from tests.fakes import FakeEngine, FakeSandbox
from tests.registry_mock import MemoryRegistry

INDEX = "import { helper } from './lib/helper.js';\nimport React from 'react';\nexport const run = () => helper();\n"
HELPER = "export function helper() {\n  // helper body\n  return 42;\n}\n"


def _demo_registry() -> MemoryRegistry:
    registry = MemoryRegistry()
    registry.add_package(
        "demo",
        "1.0.0",
        {"index.mjs": INDEX, "lib/helper.js": HELPER, "main.cjs": "module.exports = 1;\n"},
        {
            "module": "index.mjs",
            "main": "main.cjs",
            "type": "module",
            "sideEffects": False,
            "dependencies": {"left-pad": "^1.0.0", "ghost": "1.0.0"},
            "peerDependencies": {"react": "^18.0.0"},
        },
    )
    return registry


def _run(
    registry: MemoryRegistry,
    call: Callable[[PackageAnalyzer], Awaitable[Any]],
    config: AnalyzerConfig | None = None,
    *,
    engine: BundlerEngine | None = None,
    sandbox: FakeSandbox | None = None,
) -> Any:
    def _with_source(source: Any) -> Awaitable[Any]:
        analyzer = PackageAnalyzer(
            config or AnalyzerConfig(),
            source=source,
            bundler=Bundler(engine or GraphEngine()),
            sandbox=sandbox or FakeSandbox(supported=False),
        )
        return call(analyzer)

    return registry.run(_with_source)


class _RecordingEngine(GraphEngine):
    def __init__(self) -> None:
        super().__init__()
        self.entries: list[str] = []
        self.outputs: list[str] = []

    async def build(self, entry: str, resolve_hook: ResolveHook, load_hook: LoadHook) -> BuildOutput:
        output = await super().build(entry, resolve_hook, load_hook)
        self.entries.append(entry)
        self.outputs.append(output.code)
        return output


class TestAnalyzeWithCdn:
    def test_stats_from_bundle(self) -> None:
        result = _run(_demo_registry(), lambda a: a.analyze_package("demo", "1.0.0"))
        assert isinstance(result, Ok)
        stats = result.ok_value
        assert (stats.name, stats.version) == ("demo", "1.0.0")
        assert stats.size > 0
        assert 0 < stats.gzip_size
        assert stats.assets[0].name == "main"
        assert stats.assets[0].size == stats.size
        assert stats.dependency_count == 2
        assert stats.has_js_module
        assert not stats.has_js_next
        assert stats.is_module_type
        assert stats.has_side_effects is False
        assert stats.peer_dependencies == ["react"]
        assert stats.measurement is Measurement.MEASURED
        assert stats.parse_time is None
        assert stats.dependency_sizes == []

    def test_module_entry_preferred(self) -> None:
        engine = FakeEngine()
        result = _run(_demo_registry(), lambda a: a.analyze_package("demo", "1.0.0"), engine=engine)
        assert isinstance(result, Ok)
        assert engine.built == ["index.mjs"]
        assert engine.initialize_calls == 1

    def test_latest_by_default(self) -> None:
        registry = _demo_registry()
        result = _run(registry, lambda a: a.analyze_package("demo"))
        assert isinstance(result, Ok)
        assert result.ok_value.version == "1.0.0"
        assert registry.requested()[0] == "https://unpkg.com/demo/package.json"

    def test_synthesized_entry(self) -> None:
        registry = MemoryRegistry()
        registry.add_package(
            "utils",
            "2.0.0",
            {"debounce.js": "export function debounce() {}\n", "throttle.js": "export function throttle() {}\n"},
        )
        engine = FakeEngine()
        config = AnalyzerConfig(custom_imports=["debounce"])
        result = _run(registry, lambda a: a.analyze_package("utils", "2.0.0"), config, engine=engine)
        assert isinstance(result, Ok)
        assert engine.built == ["entry.js"]
        assert result.ok_value.size == len("export * from './debounce';\n")

    def test_synthesized_entry_bundles_target(self) -> None:
        registry = MemoryRegistry()
        registry.add_package("utils", "2.0.0", {"debounce.js": "export function debounce() {}\n"})
        config = AnalyzerConfig(custom_imports=["debounce"])
        result = _run(registry, lambda a: a.analyze_package("utils", "2.0.0"), config)
        assert isinstance(result, Ok)
        assert result.ok_value.size > 0

    def test_synthesized_entry_keeps_shipped_entry_file(self) -> None:
        registry = MemoryRegistry()
        registry.add_package(
            "utils",
            "2.0.0",
            {"entry.js": "export const real = 1;\n", "debounce.js": "export function debounce() {}\n"},
        )
        engine = _RecordingEngine()
        config = AnalyzerConfig(custom_imports=["entry", "debounce"])
        result = _run(registry, lambda a: a.analyze_package("utils", "2.0.0"), config, engine=engine)
        assert isinstance(result, Ok)
        assert engine.entries == ["entry_1.js"]
        (code,) = engine.outputs
        assert "export const real = 1;" in code
        assert "export function debounce() {}" in code

    def test_no_entry_point(self) -> None:
        registry = MemoryRegistry()
        registry.add_package("empty", "1.0.0", {"README.md": "# empty\n"})
        result = _run(registry, lambda a: a.analyze_package("empty", "1.0.0"))
        assert isinstance(result, Err)
        err = result.err_value
        assert err.code is AnalysisErrorCode.ENTRY_POINT_UNRESOLVED
        assert (err.package, err.version) == ("empty", "1.0.0")

    def test_package_not_found(self) -> None:
        result = _run(MemoryRegistry(), lambda a: a.analyze_package("nope", "2.0.0"))
        assert isinstance(result, Err)
        assert result.err_value.code is AnalysisErrorCode.PACKAGE_NOT_FOUND
        assert str(result.err_value).startswith("Failed to analyze package nope@2.0.0: ")

    def test_bundle_error(self) -> None:
        engine = FakeEngine(errors=["Unexpected token"])
        result = _run(_demo_registry(), lambda a: a.analyze_package("demo", "1.0.0"), engine=engine)
        assert isinstance(result, Err)
        assert result.err_value.code is AnalysisErrorCode.BUNDLE_ERROR
        assert result.err_value.package == "demo"
        assert "Unexpected token" in result.err_value.message

    def test_parse_time_in_debug(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def _fake_parse_time(code: str, runtime: str = "node") -> float:
            return 12.5

        monkeypatch.setattr("pkgscout.services.analyzer.parse_time", _fake_parse_time)
        config = AnalyzerConfig(debug=True)
        result = _run(_demo_registry(), lambda a: a.analyze_package("demo", "1.0.0"), config)
        assert result.unwrap().parse_time == 12.5

    def test_dependency_sizes(self) -> None:
        registry = _demo_registry()
        left_pad = "module.exports = function leftPad() {};\n"
        registry.add_package("left-pad", "^1.0.0", {"index.js": left_pad}, {"version": "1.0.0"})
        config = AnalyzerConfig(include_dependency_sizes=True)
        result = _run(registry, lambda a: a.analyze_package("demo", "1.0.0"), config)
        assert isinstance(result, Ok)
        manifest = json.dumps({"name": "left-pad", "version": "1.0.0"})
        # ghost is not published, so only left-pad is reported.
        (dep,) = result.ok_value.dependency_sizes
        assert dep.name == "left-pad"
        assert dep.approximate_size == len(left_pad) + len(manifest)


class TestSandboxStrategy:
    @staticmethod
    def _installed(manifest: dict[str, Any]) -> FakeSandbox:
        return FakeSandbox(files={"node_modules/demo/package.json": json.dumps(manifest)})

    def test_placeholder_stats(self) -> None:
        registry = MemoryRegistry()
        sandbox = self._installed({"name": "demo", "version": "3.1.0", "module": "x.mjs", "dependencies": {"a": "1"}})
        config = AnalyzerConfig(use_sandbox=True)
        result = _run(registry, lambda a: a.analyze_package("demo", "3.1.0"), config, sandbox=sandbox)
        assert isinstance(result, Ok)
        stats = result.ok_value
        assert stats.is_approximate
        assert (stats.size, stats.gzip_size) == (PLACEHOLDER_SIZE, PLACEHOLDER_GZIP_SIZE)
        assert stats.version == "3.1.0"
        assert stats.dependency_count == 1
        assert stats.has_js_module
        assert sandbox.commands == [("npm", ("install", "demo@3.1.0"))]
        assert sandbox.files["entry.js"] == "import 'demo';\n"
        assert json.loads(sandbox.files["package.json"])["dependencies"] == {"demo": "3.1.0"}
        assert (sandbox.initialized, sandbox.torn_down) == (1, 1)
        assert registry.requests == []

    def test_custom_imports_in_stub(self) -> None:
        sandbox = self._installed({"name": "demo", "version": "1.0.0"})
        config = AnalyzerConfig(use_sandbox=True, custom_imports=["a", "b/c"])
        result = _run(MemoryRegistry(), lambda a: a.analyze_package("demo"), config, sandbox=sandbox)
        assert isinstance(result, Ok)
        assert sandbox.files["entry.js"] == "import 'demo/a';\nimport 'demo/b/c';\n"
        assert sandbox.commands == [("npm", ("install", "demo"))]

    def test_unsupported_falls_back_to_cdn(self) -> None:
        sandbox = FakeSandbox(supported=False)
        config = AnalyzerConfig(use_sandbox=True)
        result = _run(_demo_registry(), lambda a: a.analyze_package("demo", "1.0.0"), config, sandbox=sandbox)
        assert isinstance(result, Ok)
        assert result.ok_value.measurement is Measurement.MEASURED
        assert sandbox.initialized == 0

    def test_direct_call_unsupported(self) -> None:
        sandbox = FakeSandbox(supported=False)
        result = _run(MemoryRegistry(), lambda a: a.analyze_with_sandbox("demo", "1.0.0"), sandbox=sandbox)
        assert isinstance(result, Err)
        assert result.err_value.code is AnalysisErrorCode.SANDBOX_UNSUPPORTED
        assert sandbox.initialized == 0

    def test_install_failure(self) -> None:
        sandbox = FakeSandbox(exit_code=1)
        result = _run(MemoryRegistry(), lambda a: a.analyze_with_sandbox("demo", "1.0.0"), sandbox=sandbox)
        assert isinstance(result, Err)
        assert result.err_value.code is AnalysisErrorCode.SANDBOX_FAILED
        assert sandbox.torn_down == 1

    def test_missing_installed_manifest(self) -> None:
        sandbox = FakeSandbox()
        result = _run(MemoryRegistry(), lambda a: a.analyze_with_sandbox("demo", "1.0.0"), sandbox=sandbox)
        assert isinstance(result, Err)
        assert result.err_value.code is AnalysisErrorCode.SANDBOX_FAILED
        assert sandbox.torn_down == 1

    def test_invalid_installed_manifest(self) -> None:
        sandbox = FakeSandbox(files={"node_modules/demo/package.json": "{broken"})
        result = _run(MemoryRegistry(), lambda a: a.analyze_with_sandbox("demo", "1.0.0"), sandbox=sandbox)
        assert isinstance(result, Err)
        assert result.err_value.code is AnalysisErrorCode.INVALID_MANIFEST

    def test_teardown_on_exception(self) -> None:
        sandbox = FakeSandbox(spawn_error=RuntimeError("spawn exploded"))
        with pytest.raises(RuntimeError, match="spawn exploded"):
            _run(MemoryRegistry(), lambda a: a.analyze_with_sandbox("demo", "1.0.0"), sandbox=sandbox)
        assert sandbox.torn_down == 1


class TestExportSizes:
    @staticmethod
    def _registry() -> MemoryRegistry:
        registry = MemoryRegistry()
        registry.add_package(
            "kit",
            "1.2.0",
            {
                "a.js": "export const a = 1;\n",
                "b.js": "export const b = 2;\n",
                "c.mjs": "export const c = 3;\n",
                "style.css": "body {}\n",
                "README.md": "# kit\n",
            },
        )
        return registry

    def test_every_script_file(self) -> None:
        result = _run(self._registry(), lambda a: a.get_package_export_sizes("kit", "1.2.0"))
        assert isinstance(result, Ok)
        exports = result.ok_value
        assert (exports.name, exports.version) == ("kit", "1.2.0")
        assert {asset.path for asset in exports.assets} == {"a.js", "b.js", "c.mjs"}
        assert all(asset.size > 0 for asset in exports.assets)

    def test_failed_file_dropped(self) -> None:
        engine = FakeEngine(raise_on={"b.js"})
        config = AnalyzerConfig(debug=True)
        result = _run(self._registry(), lambda a: a.get_package_export_sizes("kit", "1.2.0"), config, engine=engine)
        assert isinstance(result, Ok)
        assert {asset.path for asset in result.ok_value.assets} == {"a.js", "c.mjs"}
        assert sorted(engine.built) == ["a.js", "b.js", "c.mjs"]

    def test_not_found(self) -> None:
        result = _run(MemoryRegistry(), lambda a: a.get_package_export_sizes("ghost"))
        assert isinstance(result, Err)
        assert result.err_value.code is AnalysisErrorCode.PACKAGE_NOT_FOUND
