from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, TypeVar

from google.protobuf import descriptor as pb_descriptor
from google.protobuf import descriptor_pb2
from google.protobuf.message import Message

from protoc_tree.comments import Comment, Comments
from protoc_tree.naming import make_name
from protoc_tree.options import ExtensionRegistry, OptionExtensions, scan_options

PROTO3 = "proto3"


@dataclass(eq=False)
class Common:
    """Naming and option data shared by every entity (and by its imports)."""

    file: FileDescriptor = field(repr=False)
    path: str
    long_name: str
    full_name: str
    option_extensions: OptionExtensions = field(default_factory=OptionExtensions)

    @classmethod
    def new(cls, file: FileDescriptor, path: str, long_name: str) -> Common:
        long_name, full_name = make_name(file.package, long_name)
        return cls(file=file, path=path, long_name=long_name, full_name=full_name)

    @property
    def package(self) -> str:
        return self.file.package

    @property
    def is_proto3(self) -> bool:
        return self.file.is_proto3

    def set_options(self, options: Message, registry: ExtensionRegistry) -> None:
        """Scan ``options`` and merge what was found; later scans win on conflicts."""
        self.option_extensions.update(scan_options(options, registry))


class _Entity:
    """Accessors delegating to an entity's ``common`` facet."""

    common: Common

    @property
    def file(self) -> FileDescriptor:
        return self.common.file

    @property
    def package(self) -> str:
        return self.common.package

    @property
    def long_name(self) -> str:
        return self.common.long_name

    @property
    def full_name(self) -> str:
        return self.common.full_name

    @property
    def option_extensions(self) -> OptionExtensions:
        return self.common.option_extensions

    @property
    def is_proto3(self) -> bool:
        return self.common.is_proto3


class _Named(_Entity):
    proto: Message

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def options(self) -> Message:
        return self.proto.options


N = TypeVar("N", bound=_Named)


def _find(items: Sequence[N], name: str) -> Optional[N]:
    for item in items:
        if name in (item.name, item.long_name, item.full_name):
            return item
    return None


@dataclass(eq=False)
class ImportedDescriptor(_Entity):
    """An entity defined in another file that a file can refer to."""

    common: Common


@dataclass(eq=False)
class EnumValueDescriptor(_Named):
    common: Common
    proto: descriptor_pb2.EnumValueDescriptorProto
    comments: Comment
    enum: EnumDescriptor = field(repr=False)

    @property
    def number(self) -> int:
        return self.proto.number


@dataclass(eq=False)
class EnumDescriptor(_Named):
    common: Common
    proto: descriptor_pb2.EnumDescriptorProto
    comments: Comment
    parent: Optional[Descriptor] = field(default=None, repr=False)
    values: List[EnumValueDescriptor] = field(default_factory=list)

    def get_named_value(self, name: str) -> Optional[EnumValueDescriptor]:
        """Return the value called ``name`` (simple, long or full name), if any."""
        return _find(self.values, name)


@dataclass(eq=False)
class ExtensionDescriptor(_Named):
    """An extension field; ``parent`` is None for file level extensions."""

    common: Common
    proto: descriptor_pb2.FieldDescriptorProto
    comments: Comment
    parent: Optional[Descriptor] = field(default=None, repr=False)
    descriptor: Optional[pb_descriptor.FieldDescriptor] = field(default=None, repr=False)

    @property
    def extendee(self) -> str:
        return self.proto.extendee

    @property
    def number(self) -> int:
        return self.proto.number


@dataclass(eq=False)
class FieldDescriptor(_Named):
    common: Common
    proto: descriptor_pb2.FieldDescriptorProto
    comments: Comment
    message: Descriptor = field(repr=False)

    @property
    def number(self) -> int:
        return self.proto.number

    @property
    def type_name(self) -> str:
        return self.proto.type_name

    @property
    def is_repeated(self) -> bool:
        return self.proto.label == descriptor_pb2.FieldDescriptorProto.LABEL_REPEATED


@dataclass(eq=False)
class Descriptor(_Named):
    """A message. ``parent`` is the enclosing message, None at top level."""

    common: Common
    proto: descriptor_pb2.DescriptorProto
    comments: Comment
    parent: Optional[Descriptor] = field(default=None, repr=False)
    enums: List[EnumDescriptor] = field(default_factory=list)
    extensions: List[ExtensionDescriptor] = field(default_factory=list)
    fields: List[FieldDescriptor] = field(default_factory=list)
    messages: List[Descriptor] = field(default_factory=list)

    @property
    def is_map_entry(self) -> bool:
        return self.proto.options.map_entry

    def get_enum(self, name: str) -> Optional[EnumDescriptor]:
        return _find(self.enums, name)

    def get_message(self, name: str) -> Optional[Descriptor]:
        return _find(self.messages, name)

    def get_message_field(self, name: str) -> Optional[FieldDescriptor]:
        return _find(self.fields, name)


@dataclass(eq=False)
class MethodDescriptor(_Named):
    common: Common
    proto: descriptor_pb2.MethodDescriptorProto
    comments: Comment
    service: ServiceDescriptor = field(repr=False)
    descriptor: Optional[pb_descriptor.MethodDescriptor] = field(default=None, repr=False)
    # Filled in once every file of the batch exists.
    input_message: Optional[Descriptor] = field(default=None, repr=False)
    output_message: Optional[Descriptor] = field(default=None, repr=False)

    @property
    def input_type(self) -> str:
        return self.proto.input_type

    @property
    def output_type(self) -> str:
        return self.proto.output_type

    @property
    def client_streaming(self) -> bool:
        return self.proto.client_streaming

    @property
    def server_streaming(self) -> bool:
        return self.proto.server_streaming


@dataclass(eq=False)
class ServiceDescriptor(_Named):
    common: Common
    proto: descriptor_pb2.ServiceDescriptorProto
    comments: Comment
    methods: List[MethodDescriptor] = field(default_factory=list)
    descriptor: Optional[pb_descriptor.ServiceDescriptor] = field(default=None, repr=False)

    def get_named_method(self, name: str) -> Optional[MethodDescriptor]:
        return _find(self.methods, name)


@dataclass(eq=False)
class FileDescriptor:
    """A single .proto file with everything declared in it."""

    proto: descriptor_pb2.FileDescriptorProto
    comments: Comments = field(repr=False)
    package_comments: Comment
    syntax_comments: Comment
    descriptor: Optional[pb_descriptor.FileDescriptor] = field(default=None, repr=False)
    option_extensions: OptionExtensions = field(default_factory=OptionExtensions)

    enums: List[EnumDescriptor] = field(default_factory=list)
    extensions: List[ExtensionDescriptor] = field(default_factory=list)
    messages: List[Descriptor] = field(default_factory=list)
    services: List[ServiceDescriptor] = field(default_factory=list)
    imports: List[ImportedDescriptor] = field(default_factory=list, repr=False)

    dependencies: List[FileDescriptor] = field(default_factory=list, repr=False)
    public_dependencies: List[FileDescriptor] = field(default_factory=list, repr=False)
    is_file_to_generate: bool = False

    @property
    def name(self) -> str:
        return self.proto.name

    @property
    def package(self) -> str:
        return self.proto.package

    @property
    def syntax(self) -> str:
        return self.proto.syntax

    @property
    def is_proto3(self) -> bool:
        return self.proto.syntax == PROTO3

    @property
    def options(self) -> descriptor_pb2.FileOptions:
        return self.proto.options

    @property
    def dependency_names(self) -> List[str]:
        return list(self.proto.dependency)

    def set_options(self, options: Message, registry: ExtensionRegistry) -> None:
        self.option_extensions.update(scan_options(options, registry))

    def get_enum(self, name: str) -> Optional[EnumDescriptor]:
        """Return the top-level enum called ``name`` (simple, long or full name)."""
        return _find(self.enums, name)

    def get_message(self, name: str) -> Optional[Descriptor]:
        """Return the top-level message called ``name`` (simple, long or full name)."""
        return _find(self.messages, name)

    def get_service(self, name: str) -> Optional[ServiceDescriptor]:
        return _find(self.services, name)
