# Sandboxed install environment.
#
# The sandbox strategy installs a package with a real package manager instead
# of reading it from a CDN.  SandboxEnvironment is the contract the analyzer
# needs; NpmSandbox implements it with a throwaway directory and the local
# `npm`.  NpmSandbox isolates the filesystem only: install scripts of the
# installed package still run with the current user's privileges.
#
# Always acquire an environment through sandbox_session so teardown runs on
# every exit path, including exceptions raised mid-analysis.

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import tempfile
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Protocol

from pkgscout.services.resolver import normalize_path

logger = logging.getLogger(__name__)


class SandboxEnvironment(Protocol):
    def supports(self) -> bool: ...

    async def initialize(self) -> None: ...

    async def teardown(self) -> None: ...

    async def mount(self, files: Mapping[str, str]) -> None: ...

    async def spawn(self, command: str, args: Sequence[str] = ()) -> int: ...

    async def read_file(self, path: str) -> str: ...

    async def write_file(self, path: str, content: str) -> None: ...


class SandboxNotInitializedError(RuntimeError):
    """Raised when an environment is used outside an active session."""


@asynccontextmanager
async def sandbox_session(env: SandboxEnvironment) -> AsyncIterator[SandboxEnvironment]:
    await env.initialize()
    try:
        yield env
    finally:
        await env.teardown()


async def write_package_json(env: SandboxEnvironment, dependencies: Mapping[str, str]) -> None:
    manifest = {
        "name": "pkgscout-analysis",
        "version": "1.0.0",
        "private": True,
        "dependencies": dict(dependencies),
    }
    await env.write_file("package.json", json.dumps(manifest, indent=2))


class NpmSandbox:
    """Sandbox backed by a temporary directory and the ``npm`` executable."""

    def __init__(self, npm: str = "npm") -> None:
        self._npm = npm
        self._root: Path | None = None

    def supports(self) -> bool:
        return shutil.which(self._npm) is not None

    @property
    def root(self) -> Path:
        if self._root is None:
            raise SandboxNotInitializedError("Sandbox not initialized")
        return self._root

    async def initialize(self) -> None:
        if self._root is None:
            self._root = Path(tempfile.mkdtemp(prefix="pkgscout-sandbox-"))

    async def teardown(self) -> None:
        if self._root is not None:
            shutil.rmtree(self._root, ignore_errors=True)
            self._root = None

    def _path(self, path: str) -> Path:
        # normalize_path never climbs above the root, so writes stay inside it.
        return self.root / normalize_path(path)

    async def mount(self, files: Mapping[str, str]) -> None:
        for path, content in files.items():
            await self.write_file(path, content)

    async def write_file(self, path: str, content: str) -> None:
        target = self._path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    async def read_file(self, path: str) -> str:
        return self._path(path).read_text(encoding="utf-8")

    async def spawn(self, command: str, args: Sequence[str] = ()) -> int:
        executable = self._npm if command == "npm" else command
        process = await asyncio.create_subprocess_exec(
            executable,
            *args,
            cwd=self.root,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()
        if process.returncode:
            logger.warning(
                "%s %s exited with %s: %s",
                command,
                " ".join(args),
                process.returncode,
                stderr.decode("utf-8", "replace"),
            )
        return process.returncode or 0
