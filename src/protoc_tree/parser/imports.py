from __future__ import annotations

from typing import Iterator, List, Mapping

from protoc_tree.models import (
    Descriptor,
    EnumDescriptor,
    ExtensionDescriptor,
    FileDescriptor,
    ImportedDescriptor,
)


def walk_messages(messages: List[Descriptor]) -> Iterator[Descriptor]:
    """Yield ``messages`` and everything nested in them, parents first."""
    for msg in messages:
        yield msg
        yield from walk_messages(msg.messages)


def _all_enums(file: FileDescriptor) -> Iterator[EnumDescriptor]:
    yield from file.enums
    for msg in walk_messages(file.messages):
        yield from msg.enums


def _all_extensions(file: FileDescriptor) -> Iterator[ExtensionDescriptor]:
    yield from file.extensions
    for msg in walk_messages(file.messages):
        yield from msg.extensions


def resolve_imports(
    file: FileDescriptor, files_by_name: Mapping[str, FileDescriptor]
) -> List[ImportedDescriptor]:
    """Flatten the entities exported by ``file``'s dependencies.

    Dependencies are walked in declaration order. Within each dependency,
    messages (top-level and nested, map entries left out) come first, then
    enums, then extensions, each in declaration order with top-level
    entities ahead of nested ones. Every import shares the naming/option
    facet of the entity it stands for.
    """
    imports: List[ImportedDescriptor] = []
    for dep_name in file.proto.dependency:
        dep = files_by_name[dep_name]

        for msg in walk_messages(dep.messages):
            if msg.is_map_entry:
                continue
            imports.append(ImportedDescriptor(common=msg.common))

        for enum in _all_enums(dep):
            imports.append(ImportedDescriptor(common=enum.common))

        for ext in _all_extensions(dep):
            imports.append(ImportedDescriptor(common=ext.common))

    return imports
