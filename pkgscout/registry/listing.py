# Registry listing tree.
#
# unpkg answers ``<spec>/?meta`` with a nested description of the package
# contents.  Two shapes are seen in the wild:
#
#   {"type": "directory", "files": {"lib": {"type": "directory", "files": {...}}}}
#   {"type": "directory", "path": "/", "files": [{"type": "file", "path": "/lib/a.js"}]}
#
# parse_listing turns either into a ListingNode tree; flatten_listing walks it
# depth-first and emits one FileEntry per file with the directory names joined
# by "/".  Directories are structural only and never appear in the flat list.

from __future__ import annotations

import heapq
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from pkgscout.models.enums import NodeKind
from pkgscout.models.package import FileEntry


@dataclass(slots=True)
class ListingNode:
    path: str
    name: str
    kind: NodeKind
    size: int
    children: list[ListingNode] = field(default_factory=list)

    @property
    def is_dir(self) -> bool:
        return self.kind is NodeKind.DIRECTORY


def _node_size(payload: dict[str, Any]) -> int:
    try:
        return max(0, int(payload.get("size") or 0))
    except (TypeError, ValueError):
        return 0


def parse_listing(payload: dict[str, Any], path: str = "") -> ListingNode:
    """Build a ListingNode tree from a ``?meta`` payload."""
    name = path.rsplit("/", 1)[-1]
    if payload.get("type") == "file":
        return ListingNode(path=path, name=name, kind=NodeKind.FILE, size=_node_size(payload))

    node = ListingNode(path=path, name=name, kind=NodeKind.DIRECTORY, size=0)
    files = payload.get("files")
    if isinstance(files, dict):
        for child_name, child in files.items():
            if not isinstance(child, dict):
                continue
            child_path = f"{path}/{child_name}" if path else str(child_name)
            node.children.append(parse_listing(child, child_path))
    elif isinstance(files, list):
        for child in files:
            if not isinstance(child, dict):
                continue
            # List form carries absolute paths; keep the registry-relative tail.
            child_path = str(child.get("path", "")).strip("/")
            if not child_path:
                continue
            node.children.append(parse_listing(child, child_path))
    node.size = sum(child.size for child in node.children)
    return node


def iter_nodes(root: ListingNode) -> Iterator[ListingNode]:
    """Iterate all nodes in the tree rooted at *root*, depth-first, in listing order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def flatten_listing(root: ListingNode) -> list[FileEntry]:
    return [
        FileEntry(path=node.path, size=node.size, kind=NodeKind.FILE)
        for node in iter_nodes(root)
        if not node.is_dir and node.path
    ]


def top_files(entries: list[FileEntry], n: int) -> list[FileEntry]:
    """Return the *n* largest file entries."""
    return heapq.nlargest(n, (entry for entry in entries if entry.is_file), key=lambda entry: entry.size)
