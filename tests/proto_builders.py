"""Helpers for building descriptor inputs in tests."""

from __future__ import annotations

from typing import Iterable, Union

from google.protobuf import descriptor_pb2, text_format
from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import Message


def file_proto(text: str) -> descriptor_pb2.FileDescriptorProto:
    return text_format.Parse(text, descriptor_pb2.FileDescriptorProto())


def parse_text(text: str, message: Message) -> Message:
    return text_format.Parse(text, message)


def descriptor_file() -> descriptor_pb2.FileDescriptorProto:
    """google/protobuf/descriptor.proto, needed by any file declaring custom options."""
    return descriptor_pb2.FileDescriptorProto.FromString(
        descriptor_pb2.DESCRIPTOR.serialized_pb
    )


def request(
    *files: descriptor_pb2.FileDescriptorProto, generate: Iterable[str] = ()
) -> plugin_pb2.CodeGeneratorRequest:
    req = plugin_pb2.CodeGeneratorRequest()
    req.proto_file.extend(files)
    req.file_to_generate.extend(generate)
    return req


# -- raw wire encoding, for options carrying extensions unknown to descriptor_pb2 --


def varint(n: int) -> bytes:
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


def len_field(number: int, payload: bytes) -> bytes:
    return varint(number << 3 | 2) + varint(len(payload)) + payload


def string_option(number: int, value: str) -> bytes:
    return len_field(number, value.encode("utf-8"))


def bool_option(number: int, value: bool) -> bytes:
    return varint(number << 3) + varint(int(value))


def append(proto: Message, field_name: str, payload: Union[bytes, Message]) -> Message:
    """Return a copy of ``proto`` with ``payload`` parsed into ``field_name``.

    Goes through the wire format so that unknown option fields survive and
    the sub-message is marked present.
    """
    if isinstance(payload, Message):
        payload = payload.SerializeToString()
    number = proto.DESCRIPTOR.fields_by_name[field_name].number
    return type(proto).FromString(proto.SerializeToString() + len_field(number, payload))
