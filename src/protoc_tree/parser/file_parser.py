"""Build the entity tree of a single file from its FileDescriptorProto.

Every entity gets the comment stored at its location path. A path is the
chain of (field tag, index) pairs leading from the FileDescriptorProto to
the entity, e.g. the second field of the first nested message of the third
top-level message lives at ``4.2.3.0.2.1``.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from google.protobuf import descriptor_pb2

from protoc_tree.comments import parse_comments
from protoc_tree.models import (
    Common,
    Descriptor,
    EnumDescriptor,
    EnumValueDescriptor,
    ExtensionDescriptor,
    FieldDescriptor,
    FileDescriptor,
    MethodDescriptor,
    ServiceDescriptor,
)
from protoc_tree.naming import extension_long_name, nested_name
from protoc_tree.options import ExtensionRegistry

# FileDescriptorProto field tags
PACKAGE_PATH = 2
MESSAGE_PATH = 4
ENUM_PATH = 5
SERVICE_PATH = 6
EXTENSION_PATH = 7
SYNTAX_PATH = 12

# DescriptorProto field tags
MESSAGE_FIELD_PATH = 2  # field
MESSAGE_MESSAGE_PATH = 3  # nested_type
MESSAGE_ENUM_PATH = 4  # enum_type
MESSAGE_EXTENSION_PATH = 6  # extension

# EnumDescriptorProto field tags
ENUM_VALUE_PATH = 2  # value

# ServiceDescriptorProto field tags
SERVICE_METHOD_PATH = 2  # method


def _path(prefix: Optional[str], tag: int, index: int) -> str:
    if prefix is None:
        return f"{tag}.{index}"
    return f"{prefix}.{tag}.{index}"


def parse_file(
    file_proto: descriptor_pb2.FileDescriptorProto,
    registry: ExtensionRegistry,
) -> FileDescriptor:
    """Build the tree for ``file_proto``. Dependencies and imports are left empty."""
    comments = parse_comments(file_proto)

    file = FileDescriptor(
        proto=file_proto,
        comments=comments,
        package_comments=comments.get(str(PACKAGE_PATH)),
        syntax_comments=comments.get(str(SYNTAX_PATH)),
        descriptor=registry.find_file(file_proto.name),
    )
    if file_proto.HasField("options"):
        file.set_options(file_proto.options, registry)

    file.enums = parse_enums(file, None, file_proto.enum_type, registry)
    file.extensions = parse_extensions(file, None, file_proto.extension, registry)
    file.messages = parse_messages(file, None, file_proto.message_type, registry)
    file.services = parse_services(file, file_proto.service, registry)
    return file


def parse_enums(
    file: FileDescriptor,
    parent: Optional[Descriptor],
    protos: Sequence[descriptor_pb2.EnumDescriptorProto],
    registry: ExtensionRegistry,
) -> List[EnumDescriptor]:
    enums: List[EnumDescriptor] = []
    for i, ed in enumerate(protos):
        if parent is None:
            long_name = ed.name
            path = _path(None, ENUM_PATH, i)
        else:
            long_name = nested_name(parent.long_name, ed.name)
            path = _path(parent.common.path, MESSAGE_ENUM_PATH, i)

        enum = EnumDescriptor(
            common=Common.new(file, path, long_name),
            proto=ed,
            comments=file.comments.get(path),
            parent=parent,
        )
        if ed.HasField("options"):
            enum.common.set_options(ed.options, registry)

        enum.values = parse_enum_values(file, enum, ed.value, registry)
        enums.append(enum)
    return enums


def parse_enum_values(
    file: FileDescriptor,
    enum: EnumDescriptor,
    protos: Sequence[descriptor_pb2.EnumValueDescriptorProto],
    registry: ExtensionRegistry,
) -> List[EnumValueDescriptor]:
    values: List[EnumValueDescriptor] = []
    for i, vd in enumerate(protos):
        path = _path(enum.common.path, ENUM_VALUE_PATH, i)
        value = EnumValueDescriptor(
            common=Common.new(file, path, nested_name(enum.long_name, vd.name)),
            proto=vd,
            comments=file.comments.get(path),
            enum=enum,
        )
        if vd.HasField("options"):
            value.common.set_options(vd.options, registry)
        values.append(value)
    return values


def parse_extensions(
    file: FileDescriptor,
    parent: Optional[Descriptor],
    protos: Sequence[descriptor_pb2.FieldDescriptorProto],
    registry: ExtensionRegistry,
) -> List[ExtensionDescriptor]:
    exts: List[ExtensionDescriptor] = []
    for i, ext in enumerate(protos):
        long_name = extension_long_name(file.package, ext.extendee, ext.name)
        if parent is None:
            path = _path(None, EXTENSION_PATH, i)
            scope = file.package
        else:
            path = _path(parent.common.path, MESSAGE_EXTENSION_PATH, i)
            scope = parent.full_name.lstrip(".")

        extension = ExtensionDescriptor(
            common=Common.new(file, path, long_name),
            proto=ext,
            comments=file.comments.get(path),
            parent=parent,
            descriptor=registry.find_extension(
                f"{scope}.{ext.name}" if scope else ext.name
            ),
        )
        if ext.HasField("options"):
            extension.common.set_options(ext.options, registry)
        exts.append(extension)
    return exts


def parse_messages(
    file: FileDescriptor,
    parent: Optional[Descriptor],
    protos: Sequence[descriptor_pb2.DescriptorProto],
    registry: ExtensionRegistry,
) -> List[Descriptor]:
    msgs: List[Descriptor] = []
    for i, md in enumerate(protos):
        if parent is None:
            long_name = md.name
            path = _path(None, MESSAGE_PATH, i)
        else:
            long_name = nested_name(parent.long_name, md.name)
            path = _path(parent.common.path, MESSAGE_MESSAGE_PATH, i)

        msg = Descriptor(
            common=Common.new(file, path, long_name),
            proto=md,
            comments=file.comments.get(path),
            parent=parent,
        )
        if md.HasField("options"):
            msg.common.set_options(md.options, registry)

        msg.enums = parse_enums(file, msg, md.enum_type, registry)
        msg.extensions = parse_extensions(file, msg, md.extension, registry)
        msg.fields = parse_message_fields(file, msg, md.field, registry)
        msg.messages = parse_messages(file, msg, md.nested_type, registry)
        msgs.append(msg)
    return msgs


def parse_message_fields(
    file: FileDescriptor,
    message: Descriptor,
    protos: Sequence[descriptor_pb2.FieldDescriptorProto],
    registry: ExtensionRegistry,
) -> List[FieldDescriptor]:
    fields: List[FieldDescriptor] = []
    for i, fd in enumerate(protos):
        path = _path(message.common.path, MESSAGE_FIELD_PATH, i)
        f = FieldDescriptor(
            common=Common.new(file, path, nested_name(message.long_name, fd.name)),
            proto=fd,
            comments=file.comments.get(path),
            message=message,
        )
        if fd.HasField("options"):
            f.common.set_options(fd.options, registry)
        fields.append(f)
    return fields


def parse_services(
    file: FileDescriptor,
    protos: Sequence[descriptor_pb2.ServiceDescriptorProto],
    registry: ExtensionRegistry,
) -> List[ServiceDescriptor]:
    svcs: List[ServiceDescriptor] = []
    for i, sd in enumerate(protos):
        path = _path(None, SERVICE_PATH, i)
        svc = ServiceDescriptor(
            common=Common.new(file, path, sd.name),
            proto=sd,
            comments=file.comments.get(path),
        )
        svc.descriptor = registry.find_service(svc.full_name)
        if sd.HasField("options"):
            svc.common.set_options(sd.options, registry)

        svc.methods = parse_service_methods(file, svc, sd.method, registry)
        svcs.append(svc)
    return svcs


def parse_service_methods(
    file: FileDescriptor,
    service: ServiceDescriptor,
    protos: Sequence[descriptor_pb2.MethodDescriptorProto],
    registry: ExtensionRegistry,
) -> List[MethodDescriptor]:
    methods: List[MethodDescriptor] = []
    for i, md in enumerate(protos):
        path = _path(service.common.path, SERVICE_METHOD_PATH, i)
        method = MethodDescriptor(
            common=Common.new(file, path, nested_name(service.long_name, md.name)),
            proto=md,
            comments=file.comments.get(path),
            service=service,
        )
        if service.descriptor is not None:
            method.descriptor = service.descriptor.methods_by_name.get(md.name)
        if md.HasField("options"):
            method.common.set_options(md.options, registry)
        methods.append(method)
    return methods
