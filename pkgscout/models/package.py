from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pkgscout.models.enums import ModuleType, NodeKind, SpecifierKind

# path -> file content, built from registry downloads only.
VirtualFileSet = dict[str, str]

LATEST = "latest"


@dataclass(slots=True, frozen=True)
class FileEntry:
    path: str
    size: int
    kind: NodeKind = NodeKind.FILE

    @property
    def is_file(self) -> bool:
        return self.kind is NodeKind.FILE


@dataclass(slots=True, frozen=True)
class PackageDescriptor:
    name: str
    version: str
    main: str | None = None
    module: str | None = None
    jsnext_main: str | None = None
    type: ModuleType | None = None
    side_effects: bool | tuple[str, ...] | None = None
    dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies: dict[str, str] = field(default_factory=dict)
    files: tuple[FileEntry, ...] = ()

    @property
    def spec(self) -> str:
        return package_spec(self.name, self.version)

    def file_entries(self) -> list[FileEntry]:
        return [entry for entry in self.files if entry.is_file]

    @classmethod
    def from_manifest(
        cls,
        manifest: dict[str, Any],
        files: tuple[FileEntry, ...] = (),
        *,
        fallback_name: str = "",
        fallback_version: str = LATEST,
    ) -> PackageDescriptor:
        return cls(
            name=str(manifest.get("name") or fallback_name),
            version=str(manifest.get("version") or fallback_version),
            main=_as_str(manifest.get("main")),
            module=_as_str(manifest.get("module")),
            jsnext_main=_as_str(manifest.get("jsnext:main")),
            type=_module_type(manifest.get("type")),
            side_effects=_side_effects(manifest.get("sideEffects")),
            dependencies=_str_mapping(manifest.get("dependencies")),
            peer_dependencies=_str_mapping(manifest.get("peerDependencies")),
            files=files,
        )


def package_spec(name: str, version: str | None = None) -> str:
    """Render ``name`` or ``name@version``; ``latest`` renders as the bare name."""
    if not version or version == LATEST:
        return name
    return f"{name}@{version}"


def parse_package_spec(spec: str) -> tuple[str, str]:
    """Split ``name[@version]`` into ``(name, version)``.

    The leading ``@`` of a scoped name (``@scope/pkg``) is not a separator.
    """
    at = spec.rfind("@")
    if at <= 0:
        return spec, LATEST
    return spec[:at], spec[at + 1 :] or LATEST


def classify_specifier(raw: str) -> SpecifierKind | None:
    if raw.startswith(("./", "../")):
        return SpecifierKind.RELATIVE
    if not raw.startswith("."):
        return SpecifierKind.BARE
    return None


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _module_type(value: Any) -> ModuleType | None:
    try:
        return ModuleType(value)
    except ValueError:
        return None


def _side_effects(value: Any) -> bool | tuple[str, ...] | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    return None


def _str_mapping(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}
