"""Unit tests for per-file type registry snapshots."""

from __future__ import annotations

from collections.abc import Callable

from conftest import import_of, object_type

from pipewright.diagnostics import DiagnosticCode
from pipewright.schemas import SourceFileNode
from pipewright.typesystem import TypeRegistry, build_registry

MakeSource = Callable[..., SourceFileNode]


def snapshot(make_source: MakeSource, path: str, *types: dict) -> TypeRegistry:
    """Registry of a file that only declares ``types``."""
    return build_registry(make_source(path, types=list(types))).registry


class TestLocalDeclarations:
    """Tests for a file's own declarations."""

    def test_registers_local_types(self, make_source: MakeSource) -> None:
        """Local types are registered under this file's identity."""
        build = build_registry(
            make_source("types.pipe", types=[object_type("B", x="int"), object_type("A", y="string")])
        )
        assert build.diagnostics == ()
        assert build.registry.names() == ["A", "B"]
        assert build.registry.canonical("A") == ("types.pipe", "A")
        assert len(build.registry) == 2

    def test_duplicate_type_reports_first_line(self, make_source: MakeSource) -> None:
        """A duplicate type name points back at the first definition."""
        first = object_type("Result", ok="bool")
        first["span"] = {"start_line": 2}
        second = object_type("Result", score="int")
        second["span"] = {"start_line": 9}
        build = build_registry(make_source("types.pipe", types=[first, second]))

        (diagnostic,) = build.diagnostics
        assert diagnostic.code == DiagnosticCode.DUPLICATE_TYPE
        assert diagnostic.message == "Type 'Result' is already defined"
        assert diagnostic.hint == "First defined at line 2"
        assert diagnostic.span.start_line == 9
        # first declaration wins
        body = build.registry.resolve("Result").declaration.body
        assert body.field_names() == ["ok"]

    def test_empty_registry(self) -> None:
        """The empty registry knows no names."""
        registry = TypeRegistry.empty("ci.pipe")
        assert registry.file == "ci.pipe"
        assert not registry.has("Result")
        assert registry.resolve("Result") is None
        assert registry.canonical("Result") is None


class TestImports:
    """Tests for binding imported names."""

    def test_imports_named_type(self, make_source: MakeSource) -> None:
        """An imported type resolves to its defining file."""
        types = snapshot(make_source, "types.pipe", object_type("Result", ok="bool"))
        source = make_source("ci.pipe", imports=[import_of("./types.pipe", "Result")])
        build = build_registry(source, [(source.imports[0], types)])

        assert build.diagnostics == ()
        assert build.registry.canonical("Result") == ("types.pipe", "Result")

    def test_alias_keeps_canonical_identity(self, make_source: MakeSource) -> None:
        """An alias is a new name for the same canonical type."""
        types = snapshot(make_source, "types.pipe", object_type("Result", ok="bool"))
        source = make_source(
            "ci.pipe",
            imports=[{"path": "./types.pipe", "items": [{"name": "Result", "alias": "Outcome"}]}],
        )
        registry = build_registry(source, [(source.imports[0], types)]).registry

        assert registry.has("Outcome")
        assert not registry.has("Result")
        assert registry.canonical("Outcome") == ("types.pipe", "Result")

    def test_missing_name_suggests_close_match(self, make_source: MakeSource) -> None:
        """A misspelled import gets a suggestion."""
        types = snapshot(make_source, "types.pipe", object_type("Result", ok="bool"))
        source = make_source("ci.pipe", imports=[import_of("./types.pipe", "Reslt")])
        (diagnostic,) = build_registry(source, [(source.imports[0], types)]).diagnostics

        assert diagnostic.code == DiagnosticCode.NAME_NOT_EXPORTED
        assert diagnostic.message == "'./types.pipe' has no type named 'Reslt'"
        assert diagnostic.hint == "Did you mean 'Result'?"

    def test_missing_name_lists_available(self, make_source: MakeSource) -> None:
        """With nothing close, the hint lists the exported types."""
        types = snapshot(make_source, "types.pipe", object_type("Result", ok="bool"))
        source = make_source("ci.pipe", imports=[import_of("./types.pipe", "Configuration")])
        (diagnostic,) = build_registry(source, [(source.imports[0], types)]).diagnostics
        assert diagnostic.hint == "Available types: Result"

    def test_missing_name_from_file_without_types(self, make_source: MakeSource) -> None:
        """Importing from a file without types says so."""
        empty = snapshot(make_source, "empty.pipe")
        source = make_source("ci.pipe", imports=[import_of("./empty.pipe", "Result")])
        (diagnostic,) = build_registry(source, [(source.imports[0], empty)]).diagnostics
        assert diagnostic.hint == "'./empty.pipe' declares no types"

    def test_collision_with_local_type(self, make_source: MakeSource) -> None:
        """An import colliding with a local type is reported and the local wins."""
        types = snapshot(make_source, "types.pipe", object_type("Result", ok="bool"))
        source = make_source(
            "ci.pipe",
            types=[object_type("Result", score="int")],
            imports=[import_of("./types.pipe", "Result")],
        )
        build = build_registry(source, [(source.imports[0], types)])

        (diagnostic,) = build.diagnostics
        assert diagnostic.code == DiagnosticCode.IMPORT_NAME_COLLISION
        assert "import { Result as <name> }" in (diagnostic.hint or "")
        assert build.registry.canonical("Result") == ("ci.pipe", "Result")

    def test_duplicate_import_item(self, make_source: MakeSource) -> None:
        """Importing the same name twice is reported."""
        types = snapshot(make_source, "types.pipe", object_type("Result", ok="bool"))
        source = make_source(
            "ci.pipe",
            imports=[import_of("./types.pipe", "Result"), import_of("types.pipe", "Result")],
        )
        build = build_registry(
            source, [(source.imports[0], types), (source.imports[1], types)]
        )
        (diagnostic,) = build.diagnostics
        assert diagnostic.code == DiagnosticCode.DUPLICATE_IMPORT

    def test_unavailable_import_is_skipped(self, make_source: MakeSource) -> None:
        """Imports of unavailable files are skipped silently."""
        source = make_source("ci.pipe", imports=[import_of("./missing.pipe", "Result")])
        build = build_registry(source, [(source.imports[0], None)])
        assert build.diagnostics == ()
        assert not build.registry.has("Result")

    def test_reexported_type_keeps_origin(self, make_source: MakeSource) -> None:
        """A re-exported type keeps its original file and scope."""
        base = snapshot(
            make_source,
            "base.pipe",
            object_type("Inner", value="int"),
            object_type("Result", inner={"kind": "reference", "name": "Inner"}),
        )
        middle_source = make_source("middle.pipe", imports=[import_of("./base.pipe", "Result")])
        middle = build_registry(middle_source, [(middle_source.imports[0], base)]).registry
        top_source = make_source("ci.pipe", imports=[import_of("./middle.pipe", "Result")])
        top = build_registry(top_source, [(top_source.imports[0], middle)]).registry

        assert top.canonical("Result") == ("base.pipe", "Result")
        assert not top.has("Inner")
        assert top.scope_of("base.pipe").has("Inner")
