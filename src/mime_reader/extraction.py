"""
MIME Extraction
===============

Recursive walker classifying the parts of a message into text, html,
sources and attachments.

CONTRACT INVARIANTS:
- INV-EXTRACT-01: State is cleared at the start of every extract()
- INV-EXTRACT-02: Only text leaves receive a default transfer encoding
- INV-EXTRACT-03: Nesting deeper than max_depth raises DepthExceededError
- INV-EXTRACT-05: Decoded bodies are never logged
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from email.message import Message

from contracts import (
    DepthExceededError,
    HeaderWriter,
    HeaderWriteError,
    StructuralError,
)
from mime_reader.config import MAX_DEPTH_DEFAULT, TRANSFER_ENCODING_DEFAULT
from mime_reader.parts import (
    BinaryPayload,
    MimePart,
    Multipart,
    SinglePart,
    TextPayload,
)

logger = logging.getLogger(__name__)

TRANSFER_ENCODING_HEADER = "Content-Transfer-Encoding"


def ensure_encoding(headers: HeaderWriter, default: str) -> None:
    """
    Give a part a transfer encoding if it declares none.

    POST-NORMALIZE-02: absent header set to default verbatim
    INV-NORMALIZE-01: existing header left untouched
    """
    try:
        if headers.get_header(TRANSFER_ENCODING_HEADER) is None:
            headers.set_header(TRANSFER_ENCODING_HEADER, default)
    except Exception as e:
        raise HeaderWriteError(f"Cannot set {TRANSFER_ENCODING_HEADER}: {e}") from e


@dataclass
class ExtractionState:
    """Result buffers of one extract() call."""

    text: str = ""
    html: str = ""
    sources: list[MimePart] = field(default_factory=list)
    attachments: list[MimePart] = field(default_factory=list)

    def reset(self) -> None:
        self.text = ""
        self.html = ""
        self.sources.clear()
        self.attachments.clear()


class MimeWalker:
    """
    Classifies one message at a time into a single ExtractionState.

    The state is reused across calls, so a walker must not be shared
    between concurrent extractions.
    """

    def __init__(
        self,
        transfer_encoding: str = TRANSFER_ENCODING_DEFAULT,
        max_depth: int = MAX_DEPTH_DEFAULT,
    ) -> None:
        if max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {max_depth}")
        self.transfer_encoding = transfer_encoding
        self.max_depth = max_depth
        self.state = ExtractionState()

    def extract(self, message: Message | MimePart) -> ExtractionState:
        """
        Classify every reachable leaf of message.

        Implements ExtractContract. Any error aborts the call and leaves
        the state partially filled.
        """
        self.state.reset()
        root = MimePart(message) if isinstance(message, Message) else message

        content = root.content
        if isinstance(content, Multipart):
            self._check_depth(1)
            for part in content.parts:
                self._walk_outer(part, 1)
        elif isinstance(content, SinglePart):
            if not self._append_text_leaf(content.part):
                logger.debug("Dropping embedded %s root", content.part.mime_type)
        elif isinstance(content, TextPayload):
            # POST-EXTRACT-05: text root goes to html as is
            self.state.html += content.text
        elif isinstance(content, BinaryPayload):
            logger.debug("Dropping %s root", root.mime_type)
        else:
            raise StructuralError(
                f"Unrecognized content for {root.mime_type}: {type(content).__name__}"
            )

        logger.debug(
            "Extracted %d text chars, %d html chars, %d sources, %d attachments",
            len(self.state.text),
            len(self.state.html),
            len(self.state.sources),
            len(self.state.attachments),
        )
        return self.state

    def _walk_outer(self, part, depth: int) -> None:
        if self._append_text_leaf(part):
            return
        if part.is_mime_type("multipart/related"):
            self._walk_related(part, depth + 1)
        elif part.is_mime_type("multipart/alternative"):
            self._walk_alternative(part, depth + 1)
        else:
            self.state.attachments.append(part)

    def _walk_related(self, part, depth: int) -> None:
        for child in self._children(part, depth):
            if child.is_mime_type("multipart/alternative"):
                self._walk_alternative(child, depth + 1)
            else:
                self.state.sources.append(child)

    def _walk_alternative(self, part, depth: int) -> None:
        for child in self._children(part, depth):
            if not self._append_text_leaf(child):
                logger.debug("Dropping %s under multipart/alternative", child.mime_type)

    def _append_text_leaf(self, part) -> bool:
        """Route a text/html or text/* leaf into its buffer. False if neither."""
        if part.is_mime_type("text/html"):
            self.state.html += self._read_text(part)
        elif part.is_mime_type("text/*"):
            self.state.text += self._read_text(part)
        else:
            return False
        return True

    def _read_text(self, part) -> str:
        ensure_encoding(part, self.transfer_encoding)
        content = part.content
        if not isinstance(content, TextPayload):
            raise StructuralError(f"{part.mime_type} part did not resolve to text")
        return content.text

    def _children(self, part, depth: int) -> list:
        self._check_depth(depth)
        content = part.content
        if not isinstance(content, Multipart):
            raise StructuralError(f"{part.mime_type} part has no multipart content")
        return content.parts

    def _check_depth(self, depth: int) -> None:
        if depth > self.max_depth:
            raise DepthExceededError(
                f"MIME nesting depth {depth} exceeds max_depth={self.max_depth}"
            )
