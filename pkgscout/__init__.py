from __future__ import annotations

from pkgscout.bundle.bundler import Bundler
from pkgscout.bundle.engine import GraphEngine, ensure_engine, reset_engine, shutdown_engine
from pkgscout.config.schema import AnalyzerConfig
from pkgscout.models.analysis import AnalysisError, AnalysisErrorCode, PackageExportSizes, PackageStats
from pkgscout.registry.source import PackageSource
from pkgscout.services.analyzer import PackageAnalyzer
from pkgscout.services.resolver import resolve

__all__ = [
    "AnalysisError",
    "AnalysisErrorCode",
    "AnalyzerConfig",
    "Bundler",
    "GraphEngine",
    "PackageAnalyzer",
    "PackageExportSizes",
    "PackageSource",
    "PackageStats",
    "ensure_engine",
    "reset_engine",
    "resolve",
    "shutdown_engine",
]
