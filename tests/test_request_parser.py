import pytest

from protoc_tree.options import ExtensionRegistry, RegistrationError
from protoc_tree.parser.request_parser import LinkError, parse_code_generator_request

from proto_builders import file_proto, request


Y_FILE = """
name: "y.proto"
package: "y"
syntax: "proto3"
message_type {
  name: "Point"
  field { name: "x" number: 1 label: LABEL_OPTIONAL type: TYPE_INT32 json_name: "x" }
  field { name: "labels" number: 2 label: LABEL_REPEATED type: TYPE_MESSAGE type_name: ".y.Point.LabelsEntry" json_name: "labels" }
  nested_type {
    name: "LabelsEntry"
    field { name: "key" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING json_name: "key" }
    field { name: "value" number: 2 label: LABEL_OPTIONAL type: TYPE_STRING json_name: "value" }
    options { map_entry: true }
  }
}
enum_type {
  name: "Color"
  value { name: "COLOR_UNSPECIFIED" number: 0 }
  value { name: "RED" number: 1 }
}
"""

X_FILE = """
name: "x.proto"
package: "x"
syntax: "proto3"
dependency: "y.proto"
message_type {
  name: "Req"
  field { name: "p" number: 1 label: LABEL_OPTIONAL type: TYPE_MESSAGE type_name: ".y.Point" json_name: "p" }
  nested_type { name: "Inner" }
}
message_type {
  name: "Resp"
  field { name: "c" number: 1 label: LABEL_OPTIONAL type: TYPE_ENUM type_name: ".y.Color" json_name: "c" }
}
service {
  name: "Svc"
  method { name: "Get" input_type: ".x.Req" output_type: ".x.Resp" }
  method { name: "Locate" input_type: ".y.Point" output_type: ".x.Req.Inner" }
}
source_code_info {
  location { path: [2] leading_comments: " Package x.\\n" }
  location { path: [6, 0, 2, 1] leading_comments: " Locate a point.\\n" }
}
"""

Z_FILE = """
name: "z.proto"
package: "z"
syntax: "proto3"
dependency: "x.proto"
dependency: "y.proto"
public_dependency: 1
"""

BASE_FILE = """
name: "base.proto"
package: "a.b"
message_type {
  name: "Base"
  extension_range { start: 100 end: 200 }
  extension { name: "inner" number: 101 label: LABEL_OPTIONAL type: TYPE_STRING extendee: ".a.b.Base" }
}
extension { name: "ext" number: 100 label: LABEL_OPTIONAL type: TYPE_INT32 extendee: ".a.b.Base" }
"""


def _parse(*texts, generate=()):
    return parse_code_generator_request(
        request(*(file_proto(t) for t in texts), generate=generate)
    )


def _by_name(files):
    return {f.name: f for f in files}


class TestBatch:
    def test_files_sorted_by_name(self):
        files = _parse(Y_FILE, X_FILE, Z_FILE)
        assert [f.name for f in files] == ["x.proto", "y.proto", "z.proto"]

    def test_only_requested_files_are_flagged(self):
        files = _by_name(_parse(Y_FILE, X_FILE, generate=["x.proto"]))
        assert files["x.proto"].is_file_to_generate is True
        assert files["y.proto"].is_file_to_generate is False

    def test_dependencies_are_linked(self):
        files = _by_name(_parse(Y_FILE, X_FILE, Z_FILE))
        assert files["x.proto"].dependencies == [files["y.proto"]]
        assert files["z.proto"].dependencies == [files["x.proto"], files["y.proto"]]
        assert files["z.proto"].public_dependencies == [files["y.proto"]]
        assert files["y.proto"].dependencies == []

    def test_imports(self):
        files = _by_name(_parse(Y_FILE, X_FILE, Z_FILE))
        assert [i.full_name for i in files["x.proto"].imports] == [".y.Point", ".y.Color"]
        assert [i.full_name for i in files["z.proto"].imports] == [
            ".x.Req",
            ".x.Req.Inner",
            ".x.Resp",
            ".y.Point",
            ".y.Color",
        ]

    def test_comments_survive(self):
        files = _by_name(_parse(Y_FILE, X_FILE))
        x = files["x.proto"]
        assert str(x.package_comments) == "Package x."
        assert str(x.get_service("Svc").get_named_method("Locate").comments) == "Locate a point."

    def test_pool_descriptors_attached(self):
        files = _by_name(_parse(Y_FILE, X_FILE))
        x = files["x.proto"]
        assert x.descriptor is not None
        assert x.descriptor.name == "x.proto"
        svc = x.get_service("Svc")
        assert svc.descriptor.full_name == "x.Svc"
        assert svc.methods[1].descriptor.name == "Locate"


class TestMethodResolution:
    def test_local_message(self):
        files = _by_name(_parse(Y_FILE, X_FILE))
        x = files["x.proto"]
        get = x.get_service("Svc").get_named_method("Get")
        assert get.input_message is x.get_message("Req")
        assert get.output_message is x.get_message("Resp")

    def test_nested_and_cross_file_messages(self):
        files = _by_name(_parse(Y_FILE, X_FILE))
        x = files["x.proto"]
        locate = x.get_service("Svc").get_named_method("Locate")
        assert locate.input_message is files["y.proto"].get_message("Point")
        assert locate.output_message is x.get_message("Req").get_message("Inner")
        assert locate.input_message.file is files["y.proto"]


class TestExtensions:
    def test_extension_names_and_descriptors(self):
        files = _by_name(_parse(BASE_FILE))
        base = files["base.proto"]
        ext = base.extensions[0]
        assert ext.long_name == "Base.ext"
        assert ext.full_name == ".a.b.Base.ext"
        assert ext.descriptor.full_name == "a.b.ext"

        inner = base.get_message("Base").extensions[0]
        assert inner.long_name == "Base.inner"
        assert inner.descriptor.full_name == "a.b.Base.inner"

    def test_registry_can_be_injected(self):
        registry = ExtensionRegistry()
        parse_code_generator_request(request(file_proto(BASE_FILE)), registry)
        assert sorted(e.full_name for e in registry.extensions()) == [
            "a.b.Base.inner",
            "a.b.ext",
        ]

    def test_same_registry_twice_is_fatal(self):
        registry = ExtensionRegistry()
        parse_code_generator_request(request(file_proto(BASE_FILE)), registry)
        with pytest.raises(RegistrationError):
            parse_code_generator_request(request(file_proto(BASE_FILE)), registry)


class TestLinkErrors:
    def test_missing_generation_target(self):
        with pytest.raises(LinkError, match="missing.proto"):
            _parse(Y_FILE, generate=["missing.proto"])

    def test_missing_dependency(self):
        with pytest.raises(LinkError, match="'x.proto' depends on 'y.proto'"):
            _parse(X_FILE)

    def test_missing_dependency_leaves_registry_empty(self):
        registry = ExtensionRegistry()
        with pytest.raises(LinkError):
            parse_code_generator_request(request(file_proto(X_FILE)), registry)
        assert registry.find_file("x.proto") is None
        assert registry.extensions() == []
