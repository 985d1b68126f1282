from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pkgscout.models.enums import CdnProvider, MinifierKind


def _get_bool(data: dict[str, Any], json_key: str, default: bool) -> bool:
    return bool(data.get(json_key, default))


def _get_str_list(data: dict[str, Any], json_key: str, default: list[str]) -> list[str]:
    value = data.get(json_key)
    if not isinstance(value, list):
        return list(default)
    return [item for item in value if isinstance(item, str) and item]


@dataclass(slots=True)
class AnalyzerConfig:
    minifier: MinifierKind = MinifierKind.FAST
    debug: bool = False
    custom_imports: list[str] = field(default_factory=list)
    cdn: CdnProvider = CdnProvider.UNPKG
    use_sandbox: bool = False
    include_dependency_sizes: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "minifier": self.minifier.value,
            "debug": self.debug,
            "customImports": list(self.custom_imports),
            "cdn": self.cdn.value,
            "useWebContainer": self.use_sandbox,
            "includeDependencySizes": self.include_dependency_sizes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], defaults: AnalyzerConfig) -> AnalyzerConfig:
        minifier_raw = data.get("minifier")
        cdn_raw = data.get("cdn")
        return cls(
            minifier=MinifierKind.from_str(minifier_raw) if minifier_raw is not None else defaults.minifier,
            debug=_get_bool(data, "debug", defaults.debug),
            custom_imports=_get_str_list(data, "customImports", defaults.custom_imports),
            cdn=CdnProvider.from_str(cdn_raw) if cdn_raw is not None else defaults.cdn,
            use_sandbox=_get_bool(data, "useWebContainer", defaults.use_sandbox),
            include_dependency_sizes=_get_bool(data, "includeDependencySizes", defaults.include_dependency_sizes),
        )
