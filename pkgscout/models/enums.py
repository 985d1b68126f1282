from __future__ import annotations

from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class SpecifierKind(str, Enum):
    RELATIVE = "relative"
    BARE = "bare"


class ModuleType(str, Enum):
    MODULE = "module"
    COMMONJS = "commonjs"


class CdnProvider(str, Enum):
    UNPKG = "unpkg"
    JSDELIVR = "jsdelivr"
    SKYPACK = "skypack"
    ESM_SH = "esm.sh"

    @property
    def base_url(self) -> str:
        return _CDN_BASE_URLS[self]

    @classmethod
    def from_str(cls, value: Any) -> CdnProvider:
        return _CDN_FROM_STR.get(str(value).lower(), cls.UNPKG)


_CDN_BASE_URLS: dict[CdnProvider, str] = {
    CdnProvider.UNPKG: "https://unpkg.com",
    CdnProvider.JSDELIVR: "https://cdn.jsdelivr.net/npm",
    CdnProvider.SKYPACK: "https://cdn.skypack.dev",
    CdnProvider.ESM_SH: "https://esm.sh",
}

_CDN_FROM_STR: dict[str, CdnProvider] = {p.value: p for p in CdnProvider}


class MinifierKind(str, Enum):
    FAST = "fast"
    AST = "ast"

    @classmethod
    def from_str(cls, value: Any) -> MinifierKind:
        # "ast-based" is accepted as a long spelling of "ast".
        raw = str(value).lower()
        if raw == "ast-based":
            return cls.AST
        return cls.AST if raw == cls.AST.value else cls.FAST


class LoaderKind(str, Enum):
    JS = "js"
    TS = "ts"
    TSX = "tsx"
    JSX = "jsx"
    JSON = "json"
    CSS = "css"


class AssetType(str, Enum):
    JS = "js"
    CSS = "css"
    OTHER = "other"


class Measurement(str, Enum):
    MEASURED = "measured"
    APPROXIMATE = "approximate"
