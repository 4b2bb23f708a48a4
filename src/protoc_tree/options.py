"""Discovery of custom options (extensions) set on descriptor options messages."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.descriptor import (
    Descriptor,
    FieldDescriptor,
    FileDescriptor,
    ServiceDescriptor,
)
from google.protobuf.message import Message

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RegistrationError(Exception):
    """Raised when the batch's files or extensions cannot be registered."""


class OptionExtensions(Dict[str, Any]):
    """Decoded custom option values keyed by extension full name (``pkg.ext``)."""

    def get_as(self, name: str, kind: Type[T]) -> Optional[T]:
        """Return the value of ``name`` if it is a ``kind``.

        Returns None when the option is not set and raises TypeError when it
        is set to something of another shape.
        """
        if name not in self:
            return None
        value = self[name]
        if not isinstance(value, kind):
            raise TypeError(
                f"Option '{name}' holds {type(value).__name__}, "
                f"not {kind.__name__}"
            )
        return value


class ExtensionRegistry:
    """Extension types known while assembling a batch of files.

    Wraps a DescriptorPool holding every file of the batch. Options messages
    parsed with the stock ``descriptor_pb2`` classes carry custom options as
    unknown fields; the registry re-parses them with its own pool's classes
    so the extensions can be read.
    """

    def __init__(self, pool: Optional[descriptor_pool.DescriptorPool] = None):
        self.pool = pool if pool is not None else descriptor_pool.DescriptorPool()
        self._extensions: Dict[str, FieldDescriptor] = {}
        self._numbers: Dict[Tuple[str, int], str] = {}

    # -- registration --

    def register_files(
        self, file_protos: Iterable[descriptor_pb2.FileDescriptorProto]
    ) -> None:
        """Add ``file_protos`` (in dependency order) and register their extensions."""
        names: List[str] = []
        for file_proto in file_protos:
            try:
                self.pool.AddSerializedFile(file_proto.SerializeToString())
            except (TypeError, KeyError, ValueError) as e:
                raise RegistrationError(
                    f"Cannot add '{file_proto.name}' to the descriptor pool: {e}"
                ) from e
            names.append(file_proto.name)

        for name in names:
            file_desc = self.pool.FindFileByName(name)
            for ext in _file_extensions(file_desc):
                self.register(ext)

    def register(self, ext: FieldDescriptor) -> None:
        """Register a single extension. Registering a name or number twice fails."""
        if ext.full_name in self._extensions:
            raise RegistrationError(
                f"Extension '{ext.full_name}' is already registered"
            )
        number_key = (ext.containing_type.full_name, ext.number)
        if number_key in self._numbers:
            raise RegistrationError(
                f"Extension '{ext.full_name}' reuses field number {ext.number} "
                f"of '{ext.containing_type.full_name}' "
                f"(already taken by '{self._numbers[number_key]}')"
            )

        # Message-valued extensions need a concrete class to decode into.
        if ext.message_type is not None:
            message_factory.GetMessageClass(ext.message_type)

        self._extensions[ext.full_name] = ext
        self._numbers[number_key] = ext.full_name
        logger.debug(
            "Registered extension %s on %s (field %d)",
            ext.full_name,
            ext.containing_type.full_name,
            ext.number,
        )

    # -- lookups --

    def extensions(self) -> List[FieldDescriptor]:
        return list(self._extensions.values())

    def extensions_for(self, container: str) -> List[FieldDescriptor]:
        """Registered extensions whose containing type is ``container``."""
        return [
            ext
            for ext in self._extensions.values()
            if ext.containing_type.full_name == container
        ]

    def find_file(self, name: str) -> Optional[FileDescriptor]:
        try:
            return self.pool.FindFileByName(name)
        except KeyError:
            return None

    def find_extension(self, full_name: str) -> Optional[FieldDescriptor]:
        try:
            return self.pool.FindExtensionByName(full_name.lstrip("."))
        except KeyError:
            return None

    def find_service(self, full_name: str) -> Optional[ServiceDescriptor]:
        try:
            return self.pool.FindServiceByName(full_name.lstrip("."))
        except KeyError:
            return None

    # -- decoding --

    def materialize(self, options: Message) -> Message:
        """Re-parse ``options`` with this registry's class for the same type."""
        if options.DESCRIPTOR.file.pool is self.pool:
            return options
        descriptor: Descriptor = self.pool.FindMessageTypeByName(
            options.DESCRIPTOR.full_name
        )
        cls = message_factory.GetMessageClass(descriptor)
        return cls.FromString(options.SerializeToString())


def _file_extensions(file_desc: FileDescriptor) -> List[FieldDescriptor]:
    exts: List[FieldDescriptor] = list(file_desc.extensions_by_name.values())
    for message in file_desc.message_types_by_name.values():
        exts.extend(_message_extensions(message))
    return exts


def _message_extensions(message: Descriptor) -> List[FieldDescriptor]:
    exts: List[FieldDescriptor] = list(message.extensions)
    for nested in message.nested_types:
        exts.extend(_message_extensions(nested))
    return exts


def scan_options(options: Message, registry: ExtensionRegistry) -> OptionExtensions:
    """Collect every registered extension set on ``options``.

    The result only contains keys for extensions actually present; an empty
    repeated extension counts as absent. The input message is left untouched.
    """
    found = OptionExtensions()
    candidates = {
        ext.full_name for ext in registry.extensions_for(options.DESCRIPTOR.full_name)
    }
    if not candidates:
        return found

    decoded = registry.materialize(options)
    # ListFields reports set singular fields and non-empty repeated ones.
    for fd, value in decoded.ListFields():
        if fd.is_extension and fd.full_name in candidates:
            found[fd.full_name] = value
    return found
