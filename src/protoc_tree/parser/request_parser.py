"""Assemble every file of a CodeGeneratorRequest into linked entity trees.

The batch runs through fixed stages, once each:

1. check that every dependency is in the batch, then register the
   extensions declared anywhere in it,
2. build each file's tree on its own,
3. link files to their dependencies, resolve method input/output messages
   and flatten imports,
4. flag the files protoc asked to generate.

The files come back sorted by name.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from google.protobuf.compiler import plugin_pb2

from protoc_tree.models import Descriptor, FileDescriptor
from protoc_tree.options import ExtensionRegistry
from protoc_tree.parser.file_parser import parse_file
from protoc_tree.parser.imports import resolve_imports, walk_messages

logger = logging.getLogger(__name__)


class LinkError(Exception):
    """Raised when a file refers to another file that is not in the batch."""


def parse_code_generator_request(
    request: plugin_pb2.CodeGeneratorRequest,
    registry: Optional[ExtensionRegistry] = None,
) -> List[FileDescriptor]:
    """Build, link and flag every file of ``request``.

    ``registry`` defaults to a fresh ExtensionRegistry. Passing one in lets
    callers inspect it afterwards; it must not already hold the batch's
    extensions.
    """
    if registry is None:
        registry = ExtensionRegistry()

    check_dependencies(request)
    logger.debug("Registering extensions from %d file(s)", len(request.proto_file))
    registry.register_files(request.proto_file)

    all_files: Dict[str, FileDescriptor] = {}
    for file_proto in request.proto_file:
        all_files[file_proto.name] = parse_file(file_proto, registry)
        logger.debug("Built %s", file_proto.name)

    link_files(all_files)

    for name in request.file_to_generate:
        if name not in all_files:
            raise LinkError(f"File to generate '{name}' is not part of the request")
        all_files[name].is_file_to_generate = True

    return [all_files[name] for name in sorted(all_files)]


def check_dependencies(request: plugin_pb2.CodeGeneratorRequest) -> None:
    """Fail before registration when a file imports something outside the batch.

    The descriptor pool would refuse such a file too, but only with a
    RegistrationError naming the pool's complaint.
    """
    names = {f.name for f in request.proto_file}
    for file_proto in request.proto_file:
        for dep in file_proto.dependency:
            if dep not in names:
                raise LinkError(
                    f"'{file_proto.name}' depends on '{dep}', "
                    "which is not part of the request"
                )


def link_files(all_files: Dict[str, FileDescriptor]) -> None:
    """Resolve cross-file references once every file has been built."""
    for file in all_files.values():
        file.dependencies = [
            _lookup_file(all_files, file, name) for name in file.proto.dependency
        ]
        file.public_dependencies = [
            _lookup_file(all_files, file, file.proto.dependency[i])
            for i in file.proto.public_dependency
        ]

    resolve_method_types(all_files)

    for file in all_files.values():
        file.imports = resolve_imports(file, all_files)
        logger.debug("%s imports %d type(s)", file.name, len(file.imports))


def _lookup_file(
    all_files: Dict[str, FileDescriptor], file: FileDescriptor, name: str
) -> FileDescriptor:
    dep = all_files.get(name)
    if dep is None:
        raise LinkError(
            f"'{file.name}' depends on '{name}', which is not part of the request"
        )
    return dep


def _messages_by_full_name(file: FileDescriptor) -> Dict[str, Descriptor]:
    return {msg.full_name: msg for msg in walk_messages(file.messages)}


def resolve_method_types(all_files: Dict[str, FileDescriptor]) -> None:
    """Point each method at its input and output messages.

    Names are looked up in the declaring file first, then across the whole
    batch. Names that match nothing leave the message unset.
    """
    local: Dict[str, Dict[str, Descriptor]] = {
        name: _messages_by_full_name(file) for name, file in all_files.items()
    }
    batch: Dict[str, Descriptor] = {}
    for messages in local.values():
        for full_name, msg in messages.items():
            batch.setdefault(full_name, msg)

    for name, file in all_files.items():
        for svc in file.services:
            for method in svc.methods:
                method.input_message = local[name].get(
                    method.input_type, batch.get(method.input_type)
                )
                method.output_message = local[name].get(
                    method.output_type, batch.get(method.output_type)
                )
                if method.input_message is None or method.output_message is None:
                    logger.warning(
                        "Could not resolve all message types of %s", method.full_name
                    )
