from __future__ import annotations

from typing import Tuple


def make_name(package: str, long_name: str) -> Tuple[str, str]:
    """Return ``(long_name, full_name)`` for an entity declared in ``package``.

    A long name that already starts with a dot is taken as fully qualified
    and used for both. The full name always carries a leading dot, also
    when the package is empty.
    """
    if long_name.startswith("."):
        return long_name, long_name
    if not package:
        return long_name, f".{long_name}"
    return long_name, f".{package}.{long_name}"


def nested_name(parent_long_name: str, name: str) -> str:
    """Long name of ``name`` declared inside the entity ``parent_long_name``."""
    return f"{parent_long_name}.{name}"


def extension_long_name(package: str, extendee: str, name: str) -> str:
    """Long name of an extension field.

    When the file's package occurs anywhere in ``extendee.name`` the
    qualifier is dropped and only the extendee's last segment is kept, so an
    extension of ``.a.b.Base`` declared in package ``a.b`` becomes
    ``Base.ext``. The test is a plain substring match.
    """
    long_name = f"{extendee}.{name}"
    if package in long_name:
        return f"{extendee.split('.')[-1]}.{name}"
    return long_name
