"""
MIME Extraction Contract Tests
==============================

TRACEABILITY: Every test cites specific contract clause IDs.
Tests use exact values for deterministic behavior.

CONTRACT AUTHORITY: contracts/mime_reader_contract.py
"""

import email

import pytest

from contracts import (
    ContentReadError,
    DepthExceededError,
    HeaderWriter,
    HeaderWriteError,
    StructuralError,
)
from mime_reader.config import TRANSFER_ENCODING_BASE64
from mime_reader.extraction import MimeWalker, ensure_encoding
from mime_reader.parts import (
    MimePart,
    Multipart,
    TextPayload,
    mime_type_matches,
)


# =============================================================================
# TEST FIXTURES
# =============================================================================

class StubPart:
    """Part with fixed content, for shapes the stdlib parser never builds."""

    def __init__(self, mime_type, content, headers=None):
        self.mime_type = mime_type
        self._content = content
        self.headers = dict(headers or {})

    def is_mime_type(self, pattern):
        return mime_type_matches(self.mime_type, pattern)

    def get_header(self, name):
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return None

    def set_header(self, name, value):
        self.headers[name] = value

    @property
    def content(self):
        return self._content


class ReadOnlyHeaders:
    """HeaderWriter whose writes always fail."""

    def get_header(self, name):
        return None

    def set_header(self, name, value):
        raise RuntimeError("headers are frozen")


@pytest.fixture
def walker():
    return MimeWalker()


def parse(raw: bytes):
    return email.message_from_bytes(raw)


# =============================================================================
# MIME TYPE MATCHING
# =============================================================================

class TestMimeTypeMatching:
    """Wildcard and case handling used by every classification rule."""

    def test_exact_match_ignores_case_and_params(self):
        assert mime_type_matches("Text/HTML", "text/html")
        assert mime_type_matches("text/html; charset=utf-8", "text/html")

    def test_wildcard_subtype(self):
        assert mime_type_matches("text/calendar", "text/*")
        assert not mime_type_matches("image/png", "text/*")

    def test_subtype_mismatch(self):
        assert not mime_type_matches("text/plain", "text/html")


# =============================================================================
# NORMALIZE CONTRACT TESTS
# =============================================================================

class TestNormalizeContract:
    """Tests for ensure_encoding behavior."""

    def test_normalize_sets_default(self):
        """
        Contract: NormalizeContract
        Enforces: POST-NORMALIZE-01, POST-NORMALIZE-02
        """
        part = MimePart(email.message_from_string("Content-Type: text/plain\n\nhi\n"))

        ensure_encoding(part, TRANSFER_ENCODING_BASE64)

        assert part.get_header("content-transfer-encoding") == "Base64"

    def test_normalize_idempotent(self):
        """
        Contract: NormalizeContract
        Enforces: INV-NORMALIZE-01, INV-NORMALIZE-02
        """
        msg = email.message_from_string("Content-Type: text/plain\nX-Tag: keep\n\nhi\n")
        part = MimePart(msg)

        ensure_encoding(part, "quoted-printable")
        ensure_encoding(part, "quoted-printable")
        ensure_encoding(part, "Base64")

        assert msg.get_all("Content-Transfer-Encoding") == ["quoted-printable"]
        assert msg["X-Tag"] == "keep"
        assert msg.get_content_type() == "text/plain"

    def test_normalize_keeps_existing_header(self):
        """
        Contract: NormalizeContract
        Enforces: INV-NORMALIZE-01
        """
        msg = email.message_from_string(
            "Content-Type: text/html\nContent-Transfer-Encoding: base64\n\nPHA+SGVsbG88L3A+\n"
        )

        ensure_encoding(MimePart(msg), "quoted-printable")

        assert msg.get_all("Content-Transfer-Encoding") == ["base64"]

    def test_normalize_write_failure(self):
        """
        Contract: NormalizeContract
        Enforces: ERRORS: HEADER_WRITE
        """
        headers = ReadOnlyHeaders()
        assert isinstance(headers, HeaderWriter)

        with pytest.raises(HeaderWriteError):
            ensure_encoding(headers, "quoted-printable")


# =============================================================================
# EXTRACT CONTRACT TESTS
# =============================================================================

class TestExtractContract:
    """Tests for MimeWalker.extract classification."""

    def test_extract_alternative_capture(self, walker, alternative_email):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-01, POST-EXTRACT-03
        """
        state = walker.extract(parse(alternative_email))

        assert state.text == "Hello"
        assert state.html == "<p>Hello</p>"
        assert state.sources == []
        assert state.attachments == []

    def test_extract_related_resources(self, walker, related_email):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-02
        """
        state = walker.extract(parse(related_email))

        assert state.text == "Hello"
        assert state.html == "<p>Hello</p>"
        assert len(state.sources) == 1
        assert state.sources[0].mime_type == "image/png"
        assert state.sources[0].get_header("Content-ID") == "<logo@example.com>"
        assert state.attachments == []

    def test_extract_related_text_children_are_sources(self, walker):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-02
        """
        raw = b"""Content-Type: multipart/mixed; boundary="MIX"

--MIX
Content-Type: multipart/related; boundary="REL"

--REL
Content-Type: text/html

<img src="cid:logo">
--REL--
--MIX--
"""
        state = walker.extract(parse(raw))

        assert state.html == ""
        assert [p.mime_type for p in state.sources] == ["text/html"]
        assert state.sources[0].get_header("Content-Transfer-Encoding") is None

    def test_extract_related_root_children_use_outer_rule(self, walker):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-01

        A related root is an ordinary multipart root: its image child is an
        attachment, not a source.
        """
        raw = b"""Content-Type: multipart/related; boundary="REL"

--REL
Content-Type: text/html

<img src="cid:logo">
--REL
Content-Type: image/png
Content-Transfer-Encoding: base64

ZmFrZS1wbmc=
--REL--
"""
        state = walker.extract(parse(raw))

        assert state.html == '<img src="cid:logo">'
        assert state.sources == []
        assert [p.mime_type for p in state.attachments] == ["image/png"]

    def test_extract_attachment_fallback(self, walker, attachment_email):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-01
        """
        state = walker.extract(parse(attachment_email))

        assert state.text == "See attached"
        assert state.html == ""
        assert len(state.attachments) == 1
        assert state.attachments[0].mime_type == "application/pdf"
        assert state.sources == []

    def test_extract_attachment_headers_untouched(self, walker):
        """
        Contract: ExtractContract
        Enforces: INV-EXTRACT-02
        """
        raw = b"""Content-Type: multipart/mixed; boundary="MIX"

--MIX
Content-Type: application/octet-stream

raw-bytes
--MIX--
"""
        state = walker.extract(parse(raw))

        assert len(state.attachments) == 1
        assert state.attachments[0].get_header("Content-Transfer-Encoding") is None

    def test_extract_alternative_drops_binary(self, walker):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-03
        """
        raw = b"""Content-Type: multipart/alternative; boundary="ALT"

--ALT
Content-Type: text/plain

Hello
--ALT
Content-Type: multipart/alternative; boundary="INNER"

--INNER
Content-Type: application/octet-stream
Content-Transfer-Encoding: base64

ZmFrZS1wbmc=
--INNER--
--ALT--
"""
        state = walker.extract(parse(raw))

        assert state.text == "Hello"
        assert state.html == ""
        assert state.sources == []
        assert state.attachments == []

    def test_extract_embedded_message_root(self, walker):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-04
        """
        raw = b"""Subject: Forward
MIME-Version: 1.0
Content-Type: message/rfc822

Subject: Inner
Content-Type: text/html; charset="utf-8"

<b>caf=C3=A9</b>
"""
        msg = parse(raw)

        state = walker.extract(msg)

        assert state.html == "<b>café</b>\n"
        assert state.text == ""
        inner = msg.get_payload()[0]
        assert inner["Content-Transfer-Encoding"] == "quoted-printable"

    def test_extract_embedded_binary_root_dropped(self, walker):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-04
        """
        raw = b"""Content-Type: message/rfc822

Content-Type: image/png
Content-Transfer-Encoding: base64

ZmFrZS1wbmc=
"""
        state = walker.extract(parse(raw))

        assert (state.text, state.html, state.sources, state.attachments) == ("", "", [], [])

    def test_extract_text_root_goes_to_html(self, walker):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-05, INV-EXTRACT-02
        """
        msg = parse(b'Subject: Plain\nContent-Type: text/plain; charset="utf-8"\n\nJust text\n')

        state = walker.extract(msg)

        assert state.html == "Just text\n"
        assert state.text == ""
        assert msg["Content-Transfer-Encoding"] is None

    def test_extract_binary_root_dropped(self, walker):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-04
        """
        msg = parse(b"Content-Type: application/pdf\nContent-Transfer-Encoding: base64\n\nJVBERi0xLjQ=\n")

        state = walker.extract(msg)

        assert (state.text, state.html, state.sources, state.attachments) == ("", "", [], [])

    def test_extract_preserves_order(self, walker):
        """
        Contract: ExtractContract
        Enforces: POST-EXTRACT-06
        """
        raw = b"""Content-Type: multipart/mixed; boundary="MIX"

--MIX
Content-Type: text/plain

one
--MIX
Content-Type: image/gif

gif
--MIX
Content-Type: text/plain

two
--MIX
Content-Type: application/zip

zip
--MIX--
"""
        state = walker.extract(parse(raw))

        assert state.text == "onetwo"
        assert [p.mime_type for p in state.attachments] == ["image/gif", "application/zip"]

    def test_extract_default_encoding_applied(self):
        """
        Contract: ExtractContract
        Enforces: INV-EXTRACT-02, POST-NORMALIZE-02
        """
        raw = b"""Content-Type: multipart/mixed; boundary="MIX"

--MIX
Content-Type: text/plain; charset="utf-8"

SGVsbG8=
--MIX--
"""
        state = MimeWalker(transfer_encoding=TRANSFER_ENCODING_BASE64).extract(parse(raw))

        assert state.text == "Hello"

    def test_extract_declared_encoding_wins(self, walker):
        """
        Contract: ExtractContract
        Enforces: INV-NORMALIZE-01
        """
        raw = b"""Content-Type: multipart/mixed; boundary="MIX"

--MIX
Content-Type: text/html; charset="utf-8"
Content-Transfer-Encoding: base64

PHA+SGVsbG88L3A+
--MIX--
"""
        msg = parse(raw)

        state = walker.extract(msg)

        assert state.html == "<p>Hello</p>"
        assert msg.get_payload()[0].get_all("Content-Transfer-Encoding") == ["base64"]

    def test_extract_resets_between_calls(self, walker, attachment_email, alternative_email):
        """
        Contract: ExtractContract
        Enforces: INV-EXTRACT-01
        Adversarial: True
        """
        walker.extract(parse(attachment_email))
        walker.state.sources = [object()]

        state = walker.extract(parse(alternative_email))

        assert state.text == "Hello"
        assert state.html == "<p>Hello</p>"
        assert state.sources == []
        assert state.attachments == []

    def test_extract_depth_bound(self, related_email):
        """
        Contract: ExtractContract
        Enforces: INV-EXTRACT-03, ERRORS: DEPTH_EXCEEDED
        Adversarial: True

        mixed -> related -> alternative is three levels deep.
        """
        with pytest.raises(DepthExceededError):
            MimeWalker(max_depth=2).extract(parse(related_email))

        state = MimeWalker(max_depth=3).extract(parse(related_email))
        assert state.text == "Hello"

    def test_extract_depth_bound_rejects_invalid_limit(self):
        """
        Contract: ExtractContract
        Enforces: INV-EXTRACT-03
        """
        with pytest.raises(ValueError):
            MimeWalker(max_depth=0)

    def test_extract_structural_error(self, walker):
        """
        Contract: ExtractContract
        Enforces: ERRORS: STRUCTURAL, INV-EXTRACT-04
        """
        root = StubPart(
            "multipart/mixed",
            Multipart(
                [
                    StubPart("text/plain", TextPayload("before")),
                    StubPart("multipart/alternative", TextPayload("not a container")),
                    StubPart("text/plain", TextPayload("after")),
                ]
            ),
        )

        with pytest.raises(StructuralError):
            walker.extract(root)

        # Fail fast: nothing after the broken part was classified
        assert walker.state.text == "before"

    def test_extract_unrecognized_root_content(self, walker):
        """
        Contract: ExtractContract
        Enforces: ERRORS: STRUCTURAL
        """
        with pytest.raises(StructuralError):
            walker.extract(StubPart("application/x-custom", 42))

    def test_extract_content_read_error(self, walker):
        """
        Contract: ExtractContract
        Enforces: ERRORS: CONTENT_READ
        """
        raw = b"""Content-Type: multipart/mixed; boundary="MIX"

--MIX
Content-Type: text/plain; charset="x-no-such-charset"

Hello
--MIX--
"""
        with pytest.raises(ContentReadError):
            walker.extract(parse(raw))

    def test_extract_no_body_logging(self, walker, related_email, caplog):
        """
        Contract: ExtractContract
        Enforces: INV-EXTRACT-05
        Adversarial: True
        """
        with caplog.at_level("DEBUG"):
            walker.extract(parse(related_email))

        assert "Hello" not in caplog.text
        assert "ZmFrZS1wbmc" not in caplog.text
