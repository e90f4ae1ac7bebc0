"""
MIME Part View
==============

Read-only view over one node of a parsed email.message.Message tree.

Content is resolved on every access into a closed set of shapes:
Multipart, SinglePart, TextPayload, BinaryPayload.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from email.header import decode_header
from email.message import Message

from contracts import ContentReadError, PartSummary, StructuralError


@dataclass(frozen=True)
class Multipart:
    """Ordered children of a multipart/* node."""
    parts: list[MimePart]


@dataclass(frozen=True)
class SinglePart:
    """The message embedded in a message/* node."""
    part: MimePart


@dataclass(frozen=True)
class TextPayload:
    """Decoded body of a text/* leaf."""
    text: str


@dataclass(frozen=True)
class BinaryPayload:
    """Transfer-decoded body of any other leaf."""
    data: bytes


Content = Multipart | SinglePart | TextPayload | BinaryPayload


def mime_type_matches(mime_type: str, pattern: str) -> bool:
    """
    Match a MIME type against a pattern.

    Case-insensitive, parameters ignored, "*" as subtype matches any subtype.
    """
    maintype, _, subtype = mime_type.split(";")[0].strip().lower().partition("/")
    want_main, _, want_sub = pattern.split(";")[0].strip().lower().partition("/")
    if maintype != want_main:
        return False
    return want_sub == "*" or subtype == want_sub


def decode_header_value(value: str) -> str:
    """
    Decode RFC 2047 encoded header.

    Bytes invalid for their charset are replaced; an unknown charset is
    read as utf-8.
    """
    if not value:
        return ""

    decoded_parts = []
    for part, charset in decode_header(value):
        if isinstance(part, bytes):
            try:
                decoded_parts.append(part.decode(charset or "utf-8", errors="replace"))
            except LookupError:
                decoded_parts.append(part.decode("utf-8", errors="replace"))
        else:
            decoded_parts.append(part)
    return "".join(decoded_parts)


class MimePart:
    """One node of a message tree."""

    def __init__(self, message: Message) -> None:
        self._message = message

    def __repr__(self) -> str:
        return f"MimePart({self.mime_type!r})"

    @property
    def message(self) -> Message:
        """Underlying stdlib message object."""
        return self._message

    @property
    def mime_type(self) -> str:
        return self._message.get_content_type()

    def is_mime_type(self, pattern: str) -> bool:
        return mime_type_matches(self.mime_type, pattern)

    def get_header(self, name: str) -> str | None:
        value = self._message.get(name)
        return None if value is None else str(value)

    def set_header(self, name: str, value: str) -> None:
        if name in self._message:
            self._message.replace_header(name, value)
        else:
            self._message[name] = value

    @property
    def content(self) -> Content:
        """
        Resolve this node's content.

        Text leaves are decoded with the Content-Transfer-Encoding present
        at the time of the call, so normalize headers first.
        """
        msg = self._message
        if msg.is_multipart():
            payload = msg.get_payload()
            if msg.get_content_maintype() == "message":
                if len(payload) != 1:
                    raise StructuralError(
                        f"{self.mime_type} part must embed one message, found {len(payload)}"
                    )
                return SinglePart(MimePart(payload[0]))
            return Multipart([MimePart(p) for p in payload])

        if msg.get_content_maintype() == "text":
            return TextPayload(self._decode_text())

        return BinaryPayload(msg.get_payload(decode=True) or b"")

    def _decode_text(self) -> str:
        payload = self._message.get_payload(decode=True)
        if payload is None:
            return ""

        charset = self._message.get_content_charset() or "utf-8"
        try:
            return payload.decode(charset, errors="replace")
        except LookupError as e:
            raise ContentReadError(f"Unknown charset {charset!r} in {self.mime_type} part") from e


def summarize(part: MimePart) -> PartSummary:
    """Build a serializable summary of a source or attachment."""
    msg = part.message
    if msg.is_multipart():
        payload = msg.as_bytes()
    else:
        payload = msg.get_payload(decode=True) or b""

    filename = msg.get_filename()
    return PartSummary(
        mime_type=part.mime_type,
        filename=decode_header_value(filename) if filename else None,
        content_id=part.get_header("Content-ID"),
        size_bytes=len(payload),
        content_base64=base64.b64encode(payload).decode("ascii"),
    )
