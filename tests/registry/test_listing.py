from __future__ import annotations

from pkgscout.models.enums import NodeKind
from pkgscout.registry.listing import flatten_listing, iter_nodes, parse_listing, top_files
from tests.factories import make_entry


def _nested() -> dict[str, object]:
    return {
        "type": "directory",
        "files": {
            "package.json": {"type": "file", "size": 100},
            "lib": {
                "type": "directory",
                "files": {"index.js": {"type": "file", "size": 500}},
            },
        },
    }


class TestParseListing:
    def test_nested_form(self) -> None:
        root = parse_listing(_nested())
        assert root.kind is NodeKind.DIRECTORY
        assert [child.name for child in root.children] == ["package.json", "lib"]
        assert root.size == 600

    def test_list_form_strips_leading_slash(self) -> None:
        payload = {
            "type": "directory",
            "path": "/",
            "files": [
                {"type": "file", "path": "/index.js", "size": 10},
                {
                    "type": "directory",
                    "path": "/dist",
                    "files": [{"type": "file", "path": "/dist/index.mjs", "size": 20}],
                },
            ],
        }
        entries = flatten_listing(parse_listing(payload))
        assert [(e.path, e.size) for e in entries] == [("index.js", 10), ("dist/index.mjs", 20)]

    def test_bad_sizes_become_zero(self) -> None:
        payload = {"type": "directory", "files": {"a.js": {"type": "file", "size": "big"}, "b.js": {"type": "file"}}}
        entries = flatten_listing(parse_listing(payload))
        assert [e.size for e in entries] == [0, 0]

    def test_non_dict_children_skipped(self) -> None:
        payload = {"type": "directory", "files": {"a.js": "oops", "b.js": {"type": "file", "size": 1}}}
        assert [e.path for e in flatten_listing(parse_listing(payload))] == ["b.js"]


class TestFlattenListing:
    def test_joins_directory_names(self) -> None:
        entries = flatten_listing(parse_listing(_nested()))
        assert [(e.path, e.size) for e in entries] == [("package.json", 100), ("lib/index.js", 500)]
        assert all(e.kind is NodeKind.FILE for e in entries)

    def test_empty_directory(self) -> None:
        assert flatten_listing(parse_listing({"type": "directory", "files": {}})) == []

    def test_iter_nodes_visits_every_node(self) -> None:
        paths = [node.path for node in iter_nodes(parse_listing(_nested()))]
        assert paths == ["", "package.json", "lib", "lib/index.js"]


class TestTopFiles:
    def test_largest_first(self) -> None:
        entries = [make_entry("a", 1), make_entry("b", 30), make_entry("c", 20)]
        assert [e.path for e in top_files(entries, 2)] == ["b", "c"]

    def test_directories_ignored(self) -> None:
        entries = [make_entry("dir", 999, kind=NodeKind.DIRECTORY), make_entry("a", 1)]
        assert [e.path for e in top_files(entries, 10)] == ["a"]
