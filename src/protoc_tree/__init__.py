"""Assemble protoc descriptors into a cross-referenced, commented entity tree."""

from protoc_tree.comments import Comment, Comments, parse_comments
from protoc_tree.models import (
    Common,
    Descriptor,
    EnumDescriptor,
    EnumValueDescriptor,
    ExtensionDescriptor,
    FieldDescriptor,
    FileDescriptor,
    ImportedDescriptor,
    MethodDescriptor,
    ServiceDescriptor,
)
from protoc_tree.options import (
    ExtensionRegistry,
    OptionExtensions,
    RegistrationError,
    scan_options,
)
from protoc_tree.parser.request_parser import LinkError, parse_code_generator_request
from protoc_tree.plugin import (
    Plugin,
    RequestDecodeError,
    create_gen_request,
    files_to_generate,
    parse_parameters,
    run_plugin,
)

__all__ = [
    "Comment",
    "Comments",
    "Common",
    "Descriptor",
    "EnumDescriptor",
    "EnumValueDescriptor",
    "ExtensionDescriptor",
    "ExtensionRegistry",
    "FieldDescriptor",
    "FileDescriptor",
    "ImportedDescriptor",
    "LinkError",
    "MethodDescriptor",
    "OptionExtensions",
    "Plugin",
    "RegistrationError",
    "RequestDecodeError",
    "ServiceDescriptor",
    "create_gen_request",
    "files_to_generate",
    "parse_code_generator_request",
    "parse_comments",
    "parse_parameters",
    "run_plugin",
    "scan_options",
]
