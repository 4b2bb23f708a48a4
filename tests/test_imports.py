from protoc_tree.options import ExtensionRegistry
from protoc_tree.parser.file_parser import parse_file
from protoc_tree.parser.imports import resolve_imports

from proto_builders import file_proto


Y_FILE = """
name: "y.proto"
package: "y"
message_type {
  name: "MapEntry"
  field { name: "key" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING }
  field { name: "value" number: 2 label: LABEL_OPTIONAL type: TYPE_STRING }
  options { map_entry: true }
}
message_type {
  name: "Point"
  field { name: "tags" number: 1 label: LABEL_REPEATED type: TYPE_MESSAGE type_name: ".y.Point.TagsEntry" }
  nested_type {
    name: "TagsEntry"
    field { name: "key" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING }
    field { name: "value" number: 2 label: LABEL_OPTIONAL type: TYPE_STRING }
    options { map_entry: true }
  }
  nested_type { name: "Delta" }
  enum_type { name: "Axis" value { name: "X" number: 0 } }
}
enum_type { name: "Color" value { name: "RED" number: 0 } }
extension { name: "weight" number: 100 label: LABEL_OPTIONAL type: TYPE_INT32 extendee: ".y.Point" }
"""

W_FILE = """
name: "w.proto"
package: "w"
message_type { name: "Shape" }
"""

X_FILE = """
name: "x.proto"
package: "x"
dependency: "w.proto"
dependency: "y.proto"
message_type { name: "Local" }
"""


def _files(*texts):
    registry = ExtensionRegistry()
    parsed = [parse_file(file_proto(t), registry) for t in texts]
    return {f.name: f for f in parsed}


class TestResolveImports:
    def test_map_entries_are_excluded(self):
        files = _files(Y_FILE, W_FILE, X_FILE)
        names = [i.full_name for i in resolve_imports(files["x.proto"], files)]
        assert ".y.MapEntry" not in names
        assert ".y.Point.TagsEntry" not in names
        assert ".y.Point" in names
        assert ".y.Color" in names

    def test_dependency_then_declaration_order(self):
        files = _files(Y_FILE, W_FILE, X_FILE)
        names = [i.full_name for i in resolve_imports(files["x.proto"], files)]
        assert names == [
            ".w.Shape",
            ".y.Point",
            ".y.Point.Delta",
            ".y.Color",
            ".y.Point.Axis",
            ".y.Point.weight",
        ]

    def test_imports_share_the_common_facet(self):
        files = _files(Y_FILE, W_FILE, X_FILE)
        imports = resolve_imports(files["x.proto"], files)
        point = files["y.proto"].get_message("Point")
        imported = next(i for i in imports if i.full_name == ".y.Point")
        assert imported.common is point.common
        assert imported.long_name == "Point"
        assert imported.file is files["y.proto"]

    def test_own_entities_are_not_imported(self):
        files = _files(Y_FILE, W_FILE, X_FILE)
        names = [i.full_name for i in resolve_imports(files["x.proto"], files)]
        assert ".x.Local" not in names

    def test_no_dependencies(self):
        files = _files(W_FILE)
        assert resolve_imports(files["w.proto"], files) == []
