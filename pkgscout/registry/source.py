"""Package metadata and file access over CDN registries.

Every provider follows ``<base>/<name>[@version]/<path>``.  Only unpkg offers a
structured listing (``?meta``); for the others, and whenever the listing
fails, the file list is discovered by probing a fixed set of conventional
paths with ``HEAD`` requests.  Probing can only ever find conventionally named
files, so a probed listing is incomplete by nature.
"""

from __future__ import annotations

import logging
from types import TracebackType

import httpx
from result import Err, Ok, Result

from pkgscout.models.analysis import AnalysisError, AnalysisErrorCode, DescriptorResult
from pkgscout.models.enums import CdnProvider, NodeKind
from pkgscout.models.package import LATEST, FileEntry, PackageDescriptor, VirtualFileSet, package_spec
from pkgscout.registry.listing import flatten_listing, parse_listing
from pkgscout.services.fanout import collect_ok, gather_results
from pkgscout.services.resolver import normalize_path

logger = logging.getLogger(__name__)

PROBE_CANDIDATES: tuple[str, ...] = (
    "package.json",
    "index.js",
    "index.mjs",
    "index.ts",
    "dist/index.js",
    "dist/index.mjs",
    "dist/index.umd.js",
    "lib/index.js",
    "src/index.js",
    "src/index.ts",
    "README.md",
    "LICENSE",
)

# Order matters: ES module entries win over CommonJS ones.
ENTRY_FALLBACKS: tuple[str, ...] = ("index.js", "index.mjs", "dist/index.js", "lib/index.js")


def _content_length(response: httpx.Response) -> int:
    try:
        return max(0, int(response.headers.get("content-length", "0")))
    except ValueError:
        return 0


class PackageSource:
    """Fetch manifests, listings and file contents from one CDN provider."""

    def __init__(self, provider: CdnProvider = CdnProvider.UNPKG, client: httpx.AsyncClient | None = None) -> None:
        self._provider = provider
        self._owns_client = client is None
        # No timeout: cancellation and timeouts are left to the caller.
        self._client = client or httpx.AsyncClient(timeout=None, follow_redirects=True)

    @property
    def provider(self) -> CdnProvider:
        return self._provider

    def switch_provider(self, provider: CdnProvider) -> None:
        self._provider = provider

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> PackageSource:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def build_url(self, spec: str, path: str = "") -> str:
        return f"{self._provider.base_url}/{spec}/{path}"

    async def get_package_info(self, name: str, version: str = LATEST) -> DescriptorResult:
        spec = package_spec(name, version)

        def _error(code: AnalysisErrorCode, message: str) -> Err[AnalysisError]:
            return Err(AnalysisError(code=code, message=message, package=name, version=version))

        try:
            response = await self._client.get(self.build_url(spec, "package.json"))
        except httpx.HTTPError as exc:
            return _error(AnalysisErrorCode.REGISTRY_UNREACHABLE, f"Registry unreachable for {spec}: {exc}")

        if response.status_code == httpx.codes.NOT_FOUND:
            return _error(AnalysisErrorCode.PACKAGE_NOT_FOUND, f"Package not found: {spec}")
        if not response.is_success:
            return _error(
                AnalysisErrorCode.REGISTRY_UNREACHABLE,
                f"Registry answered {response.status_code} for {spec}/package.json",
            )

        try:
            manifest = response.json()
        except ValueError as exc:
            return _error(AnalysisErrorCode.INVALID_MANIFEST, f"Manifest of {spec} is not valid JSON: {exc}")
        if not isinstance(manifest, dict):
            return _error(AnalysisErrorCode.INVALID_MANIFEST, f"Manifest of {spec} must be a JSON object")

        files = await self.list_files(spec)
        return Ok(
            PackageDescriptor.from_manifest(
                manifest,
                tuple(files),
                fallback_name=name,
                fallback_version=version,
            )
        )

    async def list_files(self, spec: str) -> list[FileEntry]:
        if self._provider is CdnProvider.UNPKG:
            listed = await self._fetch_listing(spec)
            if isinstance(listed, Ok):
                return listed.ok_value
            logger.warning("File listing unavailable for %s (%s); probing common paths", spec, listed.err_value)
        return await self.probe_files(spec)

    async def _fetch_listing(self, spec: str) -> Result[list[FileEntry], str]:
        try:
            response = await self._client.get(f"{self._provider.base_url}/{spec}/?meta")
        except httpx.HTTPError as exc:
            return Err(str(exc))
        if not response.is_success:
            return Err(f"status {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            return Err(f"invalid listing: {exc}")
        if not isinstance(payload, dict):
            return Err("listing must be a JSON object")
        return Ok(flatten_listing(parse_listing(payload)))

    async def probe_files(self, spec: str) -> list[FileEntry]:
        """Discover conventionally named files with header-only requests."""
        results = await gather_results(self._probe(spec, path) for path in PROBE_CANDIDATES)
        return collect_ok(results, on_error=lambda err: logger.debug("Probe failed for %s: %s", spec, err))

    async def _probe(self, spec: str, path: str) -> Result[FileEntry, str]:
        try:
            response = await self._client.head(self.build_url(spec, path))
        except httpx.HTTPError as exc:
            return Err(f"{path}: {exc}")
        if not response.is_success:
            return Err(f"{path}: status {response.status_code}")
        return Ok(FileEntry(path=path, size=_content_length(response), kind=NodeKind.FILE))

    async def get_file_content(self, spec: str, path: str) -> Result[str, AnalysisError]:
        try:
            response = await self._client.get(self.build_url(spec, path))
        except httpx.HTTPError as exc:
            return Err(
                AnalysisError(
                    code=AnalysisErrorCode.REGISTRY_UNREACHABLE,
                    message=f"Failed to fetch {path} in {spec}: {exc}",
                )
            )
        if not response.is_success:
            return Err(
                AnalysisError(
                    code=AnalysisErrorCode.PACKAGE_NOT_FOUND,
                    message=f"File not found: {path} in {spec}",
                )
            )
        return Ok(response.text)

    async def download_files(self, descriptor: PackageDescriptor) -> VirtualFileSet:
        """Fetch every listed file concurrently; failed files are left out."""
        entries = descriptor.file_entries()
        spec = descriptor.spec

        async def _download(entry: FileEntry) -> Result[tuple[str, str], AnalysisError]:
            content = await self.get_file_content(spec, entry.path)
            return content.map(lambda text: (entry.path, text))

        results = await gather_results(_download(entry) for entry in entries)
        pairs = collect_ok(results, on_error=lambda err: logger.warning("Failed to download: %s", err))
        return dict(pairs)

    async def download_package(self, name: str, version: str = LATEST) -> Result[VirtualFileSet, AnalysisError]:
        info = await self.get_package_info(name, version)
        if isinstance(info, Err):
            return info
        return Ok(await self.download_files(info.ok_value))

    async def resolve_main_file(self, descriptor: PackageDescriptor) -> str | None:
        """Return the first entry candidate whose content can actually be fetched."""
        candidates: list[str] = []
        for raw in (descriptor.module, descriptor.main, *ENTRY_FALLBACKS):
            candidate = normalize_path(raw) if raw else ""
            if candidate and candidate not in candidates:
                candidates.append(candidate)

        for candidate in candidates:
            content = await self.get_file_content(descriptor.spec, candidate)
            if isinstance(content, Ok):
                return candidate
        return None
