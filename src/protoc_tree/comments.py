"""Source comments attached to descriptor locations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from google.protobuf import descriptor_pb2


@dataclass
class Comment:
    """Comments found at a single location of a .proto file."""

    leading: str = ""
    trailing: str = ""
    detached: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        text = ""
        if self.leading:
            text = self.leading + "\n"
        text += self.trailing
        return text.strip()

    def __bool__(self) -> bool:
        return bool(self.leading or self.trailing or self.detached)


class Comments(Dict[str, Comment]):
    """Comments of one file keyed by their dotted location path, e.g. ``"4.0.2.1"``."""

    def get(self, path: str) -> Comment:  # type: ignore[override]
        comment = super().get(path)
        if comment is None:
            return Comment()
        return comment


def _strip_newline(text: str) -> str:
    if text.endswith("\n"):
        return text[:-1]
    return text


def parse_comments(file_proto: descriptor_pb2.FileDescriptorProto) -> Comments:
    """Index the source code info of ``file_proto`` by location path.

    Locations without any comment text are skipped, so a lookup for them
    falls through to an empty Comment.
    """
    comments = Comments()
    for location in file_proto.source_code_info.location:
        if (
            not location.leading_comments
            and not location.trailing_comments
            and not location.leading_detached_comments
        ):
            continue

        key = ".".join(str(p) for p in location.path)
        comments[key] = Comment(
            leading=_strip_newline(location.leading_comments),
            trailing=_strip_newline(location.trailing_comments),
            detached=list(location.leading_detached_comments),
        )
    return comments
