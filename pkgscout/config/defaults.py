from __future__ import annotations

from pkgscout.config.schema import AnalyzerConfig
from pkgscout.models.enums import CdnProvider, MinifierKind


def default_config() -> AnalyzerConfig:
    return AnalyzerConfig(
        minifier=MinifierKind.FAST,
        debug=False,
        custom_imports=[],
        cdn=CdnProvider.UNPKG,
        use_sandbox=False,
        include_dependency_sizes=False,
    )
