from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from result import Result

from pkgscout.models.enums import AssetType, Measurement
from pkgscout.models.package import PackageDescriptor


@dataclass(slots=True, frozen=True)
class Asset:
    name: str
    size: int
    gzip_size: int
    type: AssetType = AssetType.JS
    path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "size": self.size,
            "gzipSize": self.gzip_size,
            "type": self.type.value,
        }
        if self.path is not None:
            payload["path"] = self.path
        return payload


@dataclass(slots=True, frozen=True)
class BundleResult:
    code: str
    size: int
    gzip_size: int
    assets: tuple[Asset, ...]


@dataclass(slots=True, frozen=True)
class MinifyResult:
    code: str
    size: int
    gzip_size: int
    minified: bool


@dataclass(slots=True, frozen=True)
class DependencySize:
    name: str
    approximate_size: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "approximateSize": self.approximate_size}


@dataclass(slots=True)
class PackageStats:
    name: str
    version: str
    size: int
    gzip_size: int
    dependency_count: int
    has_js_next: bool
    has_js_module: bool
    is_module_type: bool
    has_side_effects: bool | tuple[str, ...]
    peer_dependencies: list[str] = field(default_factory=list)
    dependency_sizes: list[DependencySize] = field(default_factory=list)
    assets: list[Asset] = field(default_factory=list)
    parse_time: float | None = None
    measurement: Measurement = Measurement.MEASURED

    @property
    def is_approximate(self) -> bool:
        return self.measurement is Measurement.APPROXIMATE

    def to_dict(self) -> dict[str, Any]:
        side_effects = self.has_side_effects
        return {
            "name": self.name,
            "version": self.version,
            "size": self.size,
            "gzipSize": self.gzip_size,
            "parseTime": self.parse_time,
            "dependencyCount": self.dependency_count,
            "hasJSNext": self.has_js_next,
            "hasJSModule": self.has_js_module,
            "isModuleType": self.is_module_type,
            "hasSideEffects": list(side_effects) if isinstance(side_effects, tuple) else side_effects,
            "peerDependencies": list(self.peer_dependencies),
            "dependencySizes": [dep.to_dict() for dep in self.dependency_sizes],
            "assets": [asset.to_dict() for asset in self.assets],
            "measurement": self.measurement.value,
        }


@dataclass(slots=True, frozen=True)
class ExportAsset:
    path: str
    size: int
    gzip_size: int
    export_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "size": self.size,
            "gzipSize": self.gzip_size,
            "exportName": self.export_name,
        }


@dataclass(slots=True)
class PackageExportSizes:
    name: str
    version: str
    assets: list[ExportAsset] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "assets": [asset.to_dict() for asset in self.assets],
        }


class AnalysisErrorCode(str, Enum):
    PACKAGE_NOT_FOUND = "package_not_found"
    REGISTRY_UNREACHABLE = "registry_unreachable"
    INVALID_MANIFEST = "invalid_manifest"
    ENTRY_POINT_UNRESOLVED = "entry_point_unresolved"
    BUNDLE_ERROR = "bundle_error"
    SANDBOX_UNSUPPORTED = "sandbox_unsupported"
    SANDBOX_FAILED = "sandbox_failed"
    INTERNAL = "internal"


@dataclass(slots=True, frozen=True)
class AnalysisError:
    code: AnalysisErrorCode
    message: str
    package: str = ""
    version: str = ""

    def __str__(self) -> str:
        if not self.package:
            return self.message
        target = self.package if not self.version else f"{self.package}@{self.version}"
        return f"Failed to analyze package {target}: {self.message}"


DescriptorResult = Result[PackageDescriptor, AnalysisError]
BundleOutcome = Result[BundleResult, AnalysisError]
AnalysisResult = Result[PackageStats, AnalysisError]
ExportSizesResult = Result[PackageExportSizes, AnalysisError]
