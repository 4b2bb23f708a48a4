from __future__ import annotations

import argparse
import json
import logging
import os
import subprocess
import sys
import tempfile
from typing import Any, Dict, List, Optional

from google.protobuf import descriptor_pb2, json_format
from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import Message

from protoc_tree.comments import Comment
from protoc_tree.models import Descriptor, EnumDescriptor, FileDescriptor
from protoc_tree.options import OptionExtensions, RegistrationError
from protoc_tree.parser.request_parser import LinkError, parse_code_generator_request
from protoc_tree.plugin import RequestDecodeError, create_gen_request, decode_request


def _include_args(proto_paths: List[str], includes: List[str]) -> List[str]:
    # de-dup while preserving order; each file's own directory comes last
    dirs = [os.path.abspath(i) for i in includes]
    dirs.extend(os.path.dirname(os.path.abspath(p)) for p in proto_paths)
    seen = set()
    inc_args: List[str] = []
    for inc in dirs:
        if inc and inc not in seen:
            seen.add(inc)
            inc_args.extend(["-I", inc])
    return inc_args


def _proto_name(proto_path: str, inc_args: List[str]) -> str:
    """Name protoc gives ``proto_path``: its path relative to the first include holding it."""
    path = os.path.abspath(proto_path)
    for inc in inc_args[1::2]:
        if path.startswith(inc + os.sep):
            return os.path.relpath(path, inc).replace(os.sep, "/")
    return os.path.basename(path)


def run_protoc(
    proto_paths: List[str], includes: List[str]
) -> plugin_pb2.CodeGeneratorRequest:
    """Compile ``proto_paths`` with protoc and wrap the descriptor set in a request."""
    inc_args = _include_args(proto_paths, includes)
    with tempfile.TemporaryDirectory() as td:
        desc_path = os.path.join(td, "descriptor_set.pb")
        cmd = [
            "protoc",
            "--include_imports",
            "--include_source_info",
            f"--descriptor_set_out={desc_path}",
        ] + inc_args + list(proto_paths)
        try:
            subprocess.run(cmd, check=True, capture_output=True)
        except FileNotFoundError as e:
            raise RuntimeError(
                "'protoc' not found. Please install Protocol Buffers compiler and ensure it is in PATH."
            ) from e
        except subprocess.CalledProcessError as e:
            raise RuntimeError(
                f"protoc failed: {e.stderr.decode('utf-8', errors='ignore')}"
            ) from e

        fds = descriptor_pb2.FileDescriptorSet()
        with open(desc_path, "rb") as f:
            fds.ParseFromString(f.read())

    return create_gen_request(fds, [_proto_name(p, inc_args) for p in proto_paths])


def load_descriptor_sets(paths: List[str]) -> plugin_pb2.CodeGeneratorRequest:
    """Merge serialized FileDescriptorSets; every file in them is a generation target."""
    fds = descriptor_pb2.FileDescriptorSet()
    seen = set()
    for path in paths:
        with open(path, "rb") as f:
            part = descriptor_pb2.FileDescriptorSet.FromString(f.read())
        for file_proto in part.file:
            if file_proto.name in seen:
                continue
            seen.add(file_proto.name)
            fds.file.append(file_proto)
    return create_gen_request(fds, [f.name for f in fds.file])


def load_request(path: str) -> plugin_pb2.CodeGeneratorRequest:
    with open(path, "rb") as f:
        return decode_request(f.read())


# -- rendering --


def _option_value(value: Any) -> Any:
    if isinstance(value, Message):
        return json_format.MessageToDict(value)
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, (str, int, float, bool)):
        return value
    # repeated extension containers
    return [_option_value(v) for v in value]


def _options(opts: OptionExtensions) -> Dict[str, Any]:
    return {name: _option_value(value) for name, value in sorted(opts.items())}


def _comment(comment: Comment) -> Optional[str]:
    text = str(comment)
    return text or None


def _enum_dict(enum: EnumDescriptor) -> Dict[str, Any]:
    return {
        "full_name": enum.full_name,
        "comment": _comment(enum.comments),
        "options": _options(enum.option_extensions),
        "values": [
            {
                "name": v.name,
                "number": v.number,
                "comment": _comment(v.comments),
                "options": _options(v.option_extensions),
            }
            for v in enum.values
        ],
    }


def _message_dict(msg: Descriptor) -> Dict[str, Any]:
    return {
        "full_name": msg.full_name,
        "long_name": msg.long_name,
        "map_entry": msg.is_map_entry,
        "comment": _comment(msg.comments),
        "options": _options(msg.option_extensions),
        "fields": [
            {
                "name": f.name,
                "number": f.number,
                "comment": _comment(f.comments),
                "options": _options(f.option_extensions),
            }
            for f in msg.fields
        ],
        "extensions": [e.full_name for e in msg.extensions],
        "enums": [_enum_dict(e) for e in msg.enums],
        "messages": [_message_dict(m) for m in msg.messages],
    }


def file_to_dict(file: FileDescriptor) -> Dict[str, Any]:
    return {
        "name": file.name,
        "package": file.package,
        "syntax": file.syntax,
        "generate": file.is_file_to_generate,
        "package_comment": _comment(file.package_comments),
        "syntax_comment": _comment(file.syntax_comments),
        "options": _options(file.option_extensions),
        "dependencies": [d.name for d in file.dependencies],
        "public_dependencies": [d.name for d in file.public_dependencies],
        "imports": [i.full_name for i in file.imports],
        "enums": [_enum_dict(e) for e in file.enums],
        "extensions": [
            {
                "full_name": e.full_name,
                "extendee": e.extendee,
                "comment": _comment(e.comments),
            }
            for e in file.extensions
        ],
        "messages": [_message_dict(m) for m in file.messages],
        "services": [
            {
                "full_name": s.full_name,
                "comment": _comment(s.comments),
                "options": _options(s.option_extensions),
                "methods": [
                    {
                        "name": m.name,
                        "input": m.input_type,
                        "output": m.output_type,
                        "comment": _comment(m.comments),
                        "options": _options(m.option_extensions),
                    }
                    for m in s.methods
                ],
            }
            for s in file.services
        ],
    }


def _outline_comment(lines: List[str], comment: Comment, indent: str) -> None:
    for line in str(comment).splitlines():
        lines.append(f"{indent}// {line.strip()}")


def _outline_options(lines: List[str], opts: OptionExtensions, indent: str) -> None:
    for name, value in _options(opts).items():
        lines.append(f"{indent}[({name}) = {json.dumps(value)}]")


def _outline_enum(lines: List[str], enum: EnumDescriptor, indent: str) -> None:
    _outline_comment(lines, enum.comments, indent)
    lines.append(f"{indent}enum {enum.full_name}")
    _outline_options(lines, enum.option_extensions, indent + "  ")
    for v in enum.values:
        _outline_comment(lines, v.comments, indent + "  ")
        lines.append(f"{indent}  {v.name} = {v.number}")


def _outline_message(lines: List[str], msg: Descriptor, indent: str) -> None:
    _outline_comment(lines, msg.comments, indent)
    kind = "map entry" if msg.is_map_entry else "message"
    lines.append(f"{indent}{kind} {msg.full_name}")
    inner = indent + "  "
    _outline_options(lines, msg.option_extensions, inner)
    for f in msg.fields:
        _outline_comment(lines, f.comments, inner)
        lines.append(f"{inner}field {f.long_name} = {f.number}")
        _outline_options(lines, f.option_extensions, inner + "  ")
    for e in msg.extensions:
        lines.append(f"{inner}extension {e.full_name}")
    for enum in msg.enums:
        _outline_enum(lines, enum, inner)
    for nested in msg.messages:
        _outline_message(lines, nested, inner)


def render_outline(files: List[FileDescriptor]) -> str:
    lines: List[str] = []
    for file in files:
        flag = " [generate]" if file.is_file_to_generate else ""
        syntax = file.syntax or "proto2"
        lines.append(f"{file.name} (package {file.package or '-'}, {syntax}){flag}")
        _outline_comment(lines, file.package_comments, "  ")
        _outline_options(lines, file.option_extensions, "  ")
        for dep in file.dependencies:
            lines.append(f"  import {dep.name}")
        for enum in file.enums:
            _outline_enum(lines, enum, "  ")
        for ext in file.extensions:
            _outline_comment(lines, ext.comments, "  ")
            lines.append(f"  extension {ext.full_name} extends {ext.extendee}")
        for msg in file.messages:
            _outline_message(lines, msg, "  ")
        for svc in file.services:
            _outline_comment(lines, svc.comments, "  ")
            lines.append(f"  service {svc.full_name}")
            _outline_options(lines, svc.option_extensions, "    ")
            for m in svc.methods:
                _outline_comment(lines, m.comments, "    ")
                lines.append(f"    rpc {m.name}({m.input_type}) returns ({m.output_type})")
                _outline_options(lines, m.option_extensions, "      ")
        lines.append("")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Assemble .proto descriptors into a named, commented tree and print it",
    )
    parser.add_argument("inputs", nargs="+", help=".proto files (default), descriptor sets or a request")
    parser.add_argument("-I", "--include", action="append", default=[], help="protoc include directory (repeatable)")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--descriptor-set", action="store_true", help="Inputs are serialized FileDescriptorSets")
    source.add_argument("--request", action="store_true", help="Input is a serialized CodeGeneratorRequest")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of an outline")
    parser.add_argument("--verbose", action="store_true", help="Log assembly steps to stderr")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.request:
            if len(args.inputs) != 1:
                parser.error("--request takes exactly one input")
            request = load_request(args.inputs[0])
        elif args.descriptor_set:
            request = load_descriptor_sets(args.inputs)
        else:
            request = run_protoc(args.inputs, args.include)
        files = parse_code_generator_request(request)
    except (RuntimeError, RequestDecodeError, RegistrationError, LinkError, OSError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps([file_to_dict(f) for f in files], indent=2))
    else:
        print(render_outline(files))


if __name__ == "__main__":
    main()
