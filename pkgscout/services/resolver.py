"""Import specifier resolution over a virtual file set.

Mirrors the lookup a bundler performs on disk, but only against the keys of
an in-memory mapping: no package manager, no version ranges, no ``exports``
maps.  Resolution is a pure lookup; an unresolved specifier yields ``None``
and the caller decides whether that makes the import external.
"""

from __future__ import annotations

from collections.abc import Container

from pkgscout.models.enums import SpecifierKind
from pkgscout.models.package import classify_specifier

RELATIVE_SUFFIXES: tuple[str, ...] = ("", ".js", ".mjs", ".ts", "/index.js", "/index.mjs", "/index.ts")
BARE_SUFFIXES: tuple[str, ...] = ("", "/index.js", "/index.mjs", "/dist/index.js", "/lib/index.js")


def normalize_path(*parts: str) -> str:
    """Join *parts* with ``/`` and fold ``.``, ``..`` and repeated separators.

    ``..`` at the root is dropped rather than escaping it.
    """
    segments: list[str] = []
    for part in parts:
        for segment in part.split("/"):
            if segment in ("", "."):
                continue
            if segment == "..":
                if segments:
                    segments.pop()
                continue
            segments.append(segment)
    return "/".join(segments)


def dirname(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def _first_present(base: str, suffixes: tuple[str, ...], files: Container[str]) -> str | None:
    for suffix in suffixes:
        candidate = base + suffix if base else suffix.lstrip("/")
        if candidate in files:
            return candidate
    return None


def resolve(specifier: str, importer: str, files: Container[str]) -> str | None:
    """Resolve *specifier* imported from *importer* to a key of *files*."""
    kind = classify_specifier(specifier)
    if kind is SpecifierKind.RELATIVE:
        return _first_present(normalize_path(dirname(importer), specifier), RELATIVE_SUFFIXES, files)
    if kind is SpecifierKind.BARE:
        return _first_present(f"node_modules/{specifier}", BARE_SUFFIXES, files)
    return None
