# Bundler engine: protocol, default implementation and process-wide instance.
#
# The engine is driven through two hooks supplied by the caller:
#   resolve_hook(specifier, importer) -> ResolveOutcome
#   load_hook(path)                   -> LoadedModule | None
# so it never touches a real filesystem.  An outcome flagged external keeps
# the import statement in the output untouched.
#
# GraphEngine is the built-in engine.  It follows the static import graph from
# the entry point, inlines every reachable module once in dependency order and
# keeps external imports as they are.  It does not parse, transpile or
# tree-shake, so its output measures "everything reachable" and is an upper
# bound on what a shaking bundler would emit.
#
# The engine instance is shared by the whole process.  ensure_engine creates
# and initializes it at most once; concurrent first callers wait on a single
# lock.  reset_engine drops it so tests start from a clean slate.

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

import rjsmin

from pkgscout.models.enums import LoaderKind


@dataclass(slots=True, frozen=True)
class ResolveOutcome:
    path: str | None
    external: bool = False


@dataclass(slots=True, frozen=True)
class LoadedModule:
    contents: str
    loader: LoaderKind


@dataclass(slots=True)
class BuildOutput:
    code: str
    errors: list[str] = field(default_factory=list)


ResolveHook = Callable[[str, str], ResolveOutcome]
LoadHook = Callable[[str], LoadedModule | None]


class BundlerEngine(Protocol):
    async def initialize(self) -> None: ...

    async def build(self, entry: str, resolve_hook: ResolveHook, load_hook: LoadHook) -> BuildOutput: ...

    async def transform(self, code: str, *, minify: bool = True) -> str: ...

    async def dispose(self) -> None: ...


# `import x from "y"`, `import {a,\n b} from "y"`, `export * from "y"`, `import "y"`.
# The clause is one binding group: an identifier, `* as ns`, or a single
# brace list (which alone may span lines), optionally after a default
# binding.  Anything else between the keyword and `from` is not an import.
_BINDING = r"(?:\{[^{}]*\}|\*(?:[ \t]*as[ \t]+[\w$]+)?|[\w$]+)"
_IMPORT_CLAUSE = r"(?:[\w$]+[ \t]*,[ \t]*)?" + _BINDING
_EXPORT_CLAUSE = r"(?:\{[^{}]*\}|\*(?:[ \t]*as[ \t]+[\w$]+)?)"
_STATIC_IMPORT = re.compile(
    r"^[ \t]*(?:"
    r"import[ \t]*(?:type[ \t]+)?" + _IMPORT_CLAUSE + r"[ \t]*from[ \t]*"
    r"|export[ \t]*(?:type[ \t]+)?" + _EXPORT_CLAUSE + r"[ \t]*from[ \t]*"
    r"|import[ \t]*"
    r""")(['"])([^'"\n]+)\1[ \t]*;?""",
    re.MULTILINE,
)
_DYNAMIC_IMPORT = re.compile(r"""\b(?:require|import)\s*\(\s*(['"])([^'"\n]+)\1\s*\)""")

_IDENT_UNSAFE = re.compile(r"[^A-Za-z0-9_$]")


@dataclass(slots=True)
class _Linked:
    body: str | None
    dependencies: list[str]


class GraphEngine:
    """Module-graph engine inlining every reachable module of the entry."""

    def __init__(self) -> None:
        self.initialized = False

    async def initialize(self) -> None:
        self.initialized = True

    async def dispose(self) -> None:
        self.initialized = False

    async def transform(self, code: str, *, minify: bool = True) -> str:
        if not minify:
            return code
        return rjsmin.jsmin(code)

    async def build(self, entry: str, resolve_hook: ResolveHook, load_hook: LoadHook) -> BuildOutput:
        errors: list[str] = []
        entry_outcome = resolve_hook(entry, "")
        if entry_outcome.path is None or entry_outcome.external:
            return BuildOutput(code="", errors=[f'Could not resolve entry point "{entry}"'])

        bodies: dict[str, str | None] = {}
        order: list[str] = []
        # Iterative post-order walk: (path, dependencies still to visit, reversed).
        stack: list[tuple[str, list[str]]] = []

        def enter(path: str) -> None:
            loaded = load_hook(path)
            if loaded is None:
                errors.append(f'Could not load "{path}"')
                bodies[path] = None
                return
            linked = self._link(path, loaded, resolve_hook)
            bodies[path] = linked.body
            stack.append((path, list(reversed(linked.dependencies))))

        enter(entry_outcome.path)
        while stack:
            path, pending = stack[-1]
            if pending:
                dependency = pending.pop()
                if dependency not in bodies:
                    enter(dependency)
                continue
            stack.pop()
            order.append(path)

        if errors:
            return BuildOutput(code="", errors=errors)

        chunks = [f"// {path}\n{bodies[path]}" for path in order if bodies[path] is not None]
        return BuildOutput(code="\n".join(chunks) + "\n" if chunks else "")

    def _link(self, path: str, loaded: LoadedModule, resolve_hook: ResolveHook) -> _Linked:
        if loaded.loader is LoaderKind.CSS:
            # Stylesheets end up in a separate artifact, not in the script bundle.
            return _Linked(body=None, dependencies=[])
        if loaded.loader is LoaderKind.JSON:
            ident = "json_" + _IDENT_UNSAFE.sub("_", path)
            return _Linked(body=f"var {ident} = {loaded.contents.strip()};", dependencies=[])

        dependencies: list[str] = []

        def internal(specifier: str) -> str | None:
            outcome = resolve_hook(specifier, path)
            if outcome.external or outcome.path is None:
                return None
            if outcome.path not in dependencies:
                dependencies.append(outcome.path)
            return outcome.path

        def inline_static(match: re.Match[str]) -> str:
            # Inlined modules need no import statement; externals keep theirs.
            return "" if internal(match.group(2)) is not None else match.group(0)

        body = _STATIC_IMPORT.sub(inline_static, loaded.contents)
        for match in _DYNAMIC_IMPORT.finditer(body):
            internal(match.group(2))
        return _Linked(body=body, dependencies=dependencies)


@dataclass(slots=True)
class _EngineState:
    engine: BundlerEngine | None = None
    lock: asyncio.Lock | None = None
    loop: asyncio.AbstractEventLoop | None = None


_STATE = _EngineState()


async def ensure_engine(factory: Callable[[], BundlerEngine] = GraphEngine) -> BundlerEngine:
    """Return the shared engine, creating and initializing it on first use."""
    if _STATE.engine is not None:
        return _STATE.engine

    loop = asyncio.get_running_loop()
    if _STATE.lock is None or _STATE.loop is not loop:
        _STATE.lock = asyncio.Lock()
        _STATE.loop = loop

    async with _STATE.lock:
        if _STATE.engine is None:
            engine = factory()
            await engine.initialize()
            _STATE.engine = engine
    return _STATE.engine


def current_engine() -> BundlerEngine | None:
    return _STATE.engine


def reset_engine() -> None:
    """Forget the shared engine without disposing it."""
    _STATE.engine = None
    _STATE.lock = None
    _STATE.loop = None


async def shutdown_engine() -> None:
    engine = _STATE.engine
    reset_engine()
    if engine is not None:
        await engine.dispose()
