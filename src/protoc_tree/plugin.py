"""protoc plugin plumbing around the descriptor tree."""

from __future__ import annotations

import logging
import sys
from typing import BinaryIO, Dict, Iterable, List, Optional, Protocol

from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import DecodeError

from protoc_tree.models import FileDescriptor
from protoc_tree.options import ExtensionRegistry
from protoc_tree.parser.request_parser import parse_code_generator_request

logger = logging.getLogger(__name__)


class RequestDecodeError(Exception):
    """Raised when the plugin input is not a CodeGeneratorRequest."""


class Plugin(Protocol):
    def generate(
        self,
        request: plugin_pb2.CodeGeneratorRequest,
        files: List[FileDescriptor],
    ) -> Iterable[plugin_pb2.CodeGeneratorResponse.File]:
        ...


def parse_parameters(parameter: str) -> Dict[str, str]:
    """Split ``a=1,b,c=x`` into ``{"a": "1", "b": "", "c": "x"}``."""
    values: Dict[str, str] = {}
    if not parameter:
        return values
    for chunk in parameter.split(","):
        key, _, value = chunk.partition("=")
        key = key.strip()
        if not key:
            continue
        values[key] = value.strip()
    return values


def decode_request(data: bytes) -> plugin_pb2.CodeGeneratorRequest:
    try:
        return plugin_pb2.CodeGeneratorRequest.FromString(data)
    except DecodeError as e:
        raise RequestDecodeError(f"Invalid CodeGeneratorRequest: {e}") from e


def create_gen_request(
    fds: descriptor_pb2.FileDescriptorSet,
    files_to_generate: Iterable[str],
    parameter: str = "",
) -> plugin_pb2.CodeGeneratorRequest:
    """Wrap a descriptor set (as written by ``protoc --descriptor_set_out``) in a request."""
    request = plugin_pb2.CodeGeneratorRequest()
    request.proto_file.extend(fds.file)
    request.file_to_generate.extend(files_to_generate)
    if parameter:
        request.parameter = parameter
    return request


def files_to_generate(files: Iterable[FileDescriptor]) -> List[FileDescriptor]:
    return [f for f in files if f.is_file_to_generate]


def run_plugin(
    plugin: Plugin,
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[BinaryIO] = None,
    registry: Optional[ExtensionRegistry] = None,
) -> plugin_pb2.CodeGeneratorResponse:
    """Read a request, assemble its files, run ``plugin`` and write the response.

    Failures raised by ``plugin`` are reported to protoc through the
    response's ``error`` field. Problems with the request itself propagate.
    """
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer

    request = decode_request(stdin.read())
    files = parse_code_generator_request(request, registry)

    response = plugin_pb2.CodeGeneratorResponse()
    response.supported_features = (
        plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL
    )
    try:
        response.file.extend(plugin.generate(request, files))
    except Exception as e:
        logger.exception("Plugin failed")
        response.ClearField("file")
        response.error = str(e) or type(e).__name__

    stdout.write(response.SerializeToString())
    stdout.flush()
    return response
