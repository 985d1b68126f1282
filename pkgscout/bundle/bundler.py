from __future__ import annotations

import asyncio
import logging

from result import Err, Ok

from pkgscout.bundle.engine import (
    BundlerEngine,
    LoadedModule,
    ResolveOutcome,
    ensure_engine,
)
from pkgscout.bundle.minifiers import AstMinifier, Minifier
from pkgscout.models.analysis import AnalysisError, AnalysisErrorCode, Asset, BundleOutcome, BundleResult, MinifyResult
from pkgscout.models.enums import AssetType, LoaderKind, MinifierKind
from pkgscout.models.package import VirtualFileSet
from pkgscout.services.resolver import resolve
from pkgscout.services.sizes import DEFAULT_COMPRESSOR, CompressorFactory, byte_size, compressed_size

logger = logging.getLogger(__name__)

_LOADERS: dict[str, LoaderKind] = {
    "ts": LoaderKind.TS,
    "tsx": LoaderKind.TSX,
    "jsx": LoaderKind.JSX,
    "json": LoaderKind.JSON,
    "css": LoaderKind.CSS,
}


def loader_for(path: str) -> LoaderKind:
    """Pick the loader from the file extension alone."""
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return LoaderKind.JS
    return _LOADERS.get(name.rsplit(".", 1)[-1].lower(), LoaderKind.JS)


class Bundler:
    """Bundle a virtual file set through the engine and measure the output.

    Builds are serialized: the engine is not assumed to be reentrant.
    Without an explicit engine the process-wide one is used.
    """

    def __init__(
        self,
        engine: BundlerEngine | None = None,
        *,
        compressor: CompressorFactory | None = DEFAULT_COMPRESSOR,
        ast_minifier: Minifier | None = None,
    ) -> None:
        self._engine = engine
        self._shared_engine = engine is None
        self._engine_ready = False
        self._compressor = compressor
        self._ast_minifier = ast_minifier or AstMinifier()
        self._lock: asyncio.Lock | None = None
        self._ready_lock: asyncio.Lock | None = None

    async def ready(self) -> BundlerEngine:
        if self._engine is not None and self._engine_ready:
            return self._engine
        if self._ready_lock is None:
            self._ready_lock = asyncio.Lock()
        async with self._ready_lock:
            if self._engine is None:
                self._engine = await ensure_engine()
            elif not self._engine_ready:
                await self._engine.initialize()
            self._engine_ready = True
        return self._engine

    async def bundle(self, entry: str, files: VirtualFileSet) -> BundleOutcome:
        engine = await self.ready()

        def resolve_hook(specifier: str, importer: str) -> ResolveOutcome:
            if specifier in files:
                return ResolveOutcome(path=specifier)
            resolved = resolve(specifier, importer, files)
            if resolved is None:
                return ResolveOutcome(path=None, external=True)
            return ResolveOutcome(path=resolved)

        def load_hook(path: str) -> LoadedModule | None:
            contents = files.get(path)
            if contents is None:
                return None
            return LoadedModule(contents=contents, loader=loader_for(path))

        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            try:
                output = await engine.build(entry, resolve_hook, load_hook)
            except Exception as exc:  # noqa: BLE001
                return Err(AnalysisError(code=AnalysisErrorCode.BUNDLE_ERROR, message=f"Bundling failed: {exc}"))

        if output.errors:
            return Err(
                AnalysisError(
                    code=AnalysisErrorCode.BUNDLE_ERROR,
                    message=f"Build errors: {', '.join(output.errors)}",
                )
            )

        size = byte_size(output.code)
        gzip_size = compressed_size(output.code, self._compressor)
        return Ok(
            BundleResult(
                code=output.code,
                size=size,
                gzip_size=gzip_size,
                assets=(Asset(name="main", size=size, gzip_size=gzip_size, type=AssetType.JS),),
            )
        )

    async def minify_code(self, code: str, minifier: MinifierKind = MinifierKind.FAST) -> MinifyResult:
        """Minify *code*; when the minifier gives nothing back the input is kept."""
        minified: str | None
        try:
            if minifier is MinifierKind.AST:
                minified = self._ast_minifier.minify(code)
            else:
                engine = await self.ready()
                minified = await engine.transform(code, minify=True)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Minification failed, keeping unminified code: %s", exc)
            minified = None

        if not minified:
            output, changed = code, False
        else:
            output, changed = minified, True
        return MinifyResult(
            code=output,
            size=byte_size(output),
            gzip_size=compressed_size(output, self._compressor),
            minified=changed,
        )

    async def dispose(self) -> None:
        # The shared engine outlives any single bundler; see shutdown_engine.
        if self._engine is not None and self._engine_ready and not self._shared_engine:
            await self._engine.dispose()
        if self._shared_engine:
            self._engine = None
        self._engine_ready = False
