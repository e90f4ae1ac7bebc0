"""
MIME Mail Reader Contract
=========================

Behavioral contract for the MIME extraction engine and the IMAP
reader built around it.

Implementation SHALL perform ONLY declared behaviors.

AUTHORITY: This file is the SINGLE authoritative source for reader behavior.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


# =============================================================================
# DOMAIN TYPES
# =============================================================================

@dataclass(frozen=True)
class PartSummary:
    """Serializable view of a source or attachment part."""
    mime_type: str
    filename: str | None
    content_id: str | None
    size_bytes: int
    content_base64: str


@dataclass(frozen=True)
class ExtractedMessage:
    """One message after extraction, detached from the accumulator."""
    uid: int
    subject: str
    text: str
    html: str
    sources: list[PartSummary]
    attachments: list[PartSummary]


@dataclass(frozen=True)
class ExtractionFailure:
    """A fetched message whose extraction failed; left unseen on the server."""
    uid: int
    error: str
    restored_unseen: bool


@dataclass(frozen=True)
class ConnectionStatus:
    """Current reader state."""
    connected: bool
    server: str
    folder: str | None
    uptime_seconds: int


# =============================================================================
# ERROR TYPES
# =============================================================================

class MimeReaderError(Exception):
    """Base error for all reader operations."""
    code: str


class StructuralError(MimeReaderError):
    """
    ERRORS-EXTRACT-01: Content does not resolve to the shape its MIME type
    requires (e.g. multipart/related without multipart content).

    RECOVERY: Fatal for the extract call.
    """
    code = "STRUCTURAL"


class HeaderWriteError(MimeReaderError):
    """
    ERRORS-EXTRACT-02: Content-Transfer-Encoding could not be written.

    RECOVERY: Fatal for the extract call.
    """
    code = "HEADER_WRITE"


class ContentReadError(MimeReaderError):
    """
    ERRORS-EXTRACT-03: A leaf's bytes could not be decoded.

    RECOVERY: Fatal for the extract call. Caller may re-fetch and retry.
    """
    code = "CONTENT_READ"


class DepthExceededError(MimeReaderError):
    """
    ERRORS-EXTRACT-04: Multipart nesting exceeds the configured maximum.

    RECOVERY: Fatal for the extract call. Message is not extractable.
    """
    code = "DEPTH_EXCEEDED"


class NotInitializedError(MimeReaderError):
    """
    ERRORS-READER-01: Mailbox operation attempted before init().

    RECOVERY: Call init() first.
    """
    code = "NOT_INITIALIZED"


class ConnectionFailedError(MimeReaderError):
    """
    ERRORS-READER-02: Network unreachable or host not found.

    RECOVERY: Fatal. Check network connectivity and retry.
    """
    code = "CONNECTION_FAILED"


class AuthFailedError(MimeReaderError):
    """
    ERRORS-READER-03: Server rejected the credentials.

    RECOVERY: Fatal. User must update stored credentials.
    """
    code = "AUTH_FAILED"


class FolderNotFoundError(MimeReaderError):
    """
    ERRORS-READER-04: Mailbox could not be selected.

    RECOVERY: Caller should pick an existing mailbox.
    """
    code = "FOLDER_NOT_FOUND"


class BiosecretDeniedError(MimeReaderError):
    """
    ERRORS-CREDENTIALS-01: User cancelled biometric prompt.

    RECOVERY: Fatal. Restart to retry.
    """
    code = "BIOSECRET_DENIED"


class BiosecretNotFoundError(MimeReaderError):
    """
    ERRORS-CREDENTIALS-02: No credentials stored under expected keychain key.

    RECOVERY: Fatal. User must store credentials via biosecret before retry.
    """
    code = "BIOSECRET_NOT_FOUND"


# =============================================================================
# EXTRACTION CONTRACTS
# =============================================================================

@runtime_checkable
class HeaderWriter(Protocol):
    """
    Capability handed to the transfer-encoding normalizer.

    Header names are matched case-insensitively.
    """

    def get_header(self, name: str) -> str | None:
        ...

    def set_header(self, name: str, value: str) -> None:
        ...


@runtime_checkable
class NormalizeContract(Protocol):
    """
    Operation: ensure_encoding

    PRE-NORMALIZE-01: part exposes get_header/set_header
    PRE-NORMALIZE-02: runs before the content of a text leaf is read

    POST-NORMALIZE-01: Content-Transfer-Encoding present after the call
    POST-NORMALIZE-02: absent header is set to the configured default verbatim

    INV-NORMALIZE-01 (Idempotent): an existing header is never rewritten
    INV-NORMALIZE-02 (Targeted Mutation): no other header is touched

    ERRORS:
    - HEADER_WRITE: header mutation failed
    """

    def __call__(self, headers: HeaderWriter, default: str) -> None:
        ...


@runtime_checkable
class ExtractContract(Protocol):
    """
    Operation: extract

    Classify every reachable leaf of a message into text, html, sources,
    or attachments.

    PRE-EXTRACT-01: message is an email.message.Message or a Part

    POST-EXTRACT-01: multipart root: each child classified by the outer rule
                     (text/html -> html, text/* -> text, related -> related
                     rule, alternative -> alternative rule, else attachment)
    POST-EXTRACT-02: related children: alternative -> alternative rule,
                     everything else -> sources
    POST-EXTRACT-03: alternative children: text/html -> html, text/* -> text,
                     everything else dropped
    POST-EXTRACT-04: embedded message root: text leaf normalized into
                     html/text, anything else dropped
    POST-EXTRACT-05: text root: decoded payload appended to html verbatim,
                     headers untouched
    POST-EXTRACT-06: buffers concatenate in traversal order

    INV-EXTRACT-01 (Reset): no residue from a previous call survives
    INV-EXTRACT-02 (Normalize Text Only): only text/html leaves receive a
                   default Content-Transfer-Encoding
    INV-EXTRACT-03 (Bounded Depth): nesting deeper than max_depth fails
                   instead of recursing
    INV-EXTRACT-04 (Fail Fast): any error aborts the call, no partial
                   reclassification
    INV-EXTRACT-05 (No Content Logging): decoded bodies never logged

    ERRORS:
    - STRUCTURAL: container content is not multipart
    - HEADER_WRITE: normalizer failed
    - CONTENT_READ: leaf decoding failed
    - DEPTH_EXCEEDED: recursion bound hit
    """

    def extract(self, message: object) -> object:
        ...


# =============================================================================
# READER CONTRACT
# =============================================================================

@runtime_checkable
class ReaderContract(Protocol):
    """
    IMAP reader facade.

    PRE-READER-01: init() succeeded before any mailbox operation

    POST-READER-01: get_unseen_and_mark_seen returns messages that were
                    UNSEEN and sets \\Seen on each
    POST-READER-02: mark_seen_by_index/by_uid return False for messages
                    outside the current batch
    POST-READER-03: get_content exposes the extraction result through
                    text_content, html_content, sources, attachments
    POST-READER-04: close() leaves the reader uninitialized
    POST-READER-05: a message whose extraction fails is reported by uid
                    and its \\Seen flag is cleared again

    INV-READER-01 (Seen Only): only the \\Seen flag is modified
    INV-READER-02 (No Credential Logging): credentials never logged
    INV-READER-03 (Flag Failures Reported): a failed flag update is logged
                  and reported, never raised

    ERRORS:
    - NOT_INITIALIZED: operation before init()
    - CONNECTION_FAILED: server unreachable
    - AUTH_FAILED: login rejected
    - FOLDER_NOT_FOUND: mailbox cannot be selected
    """

    def get_unseen_and_mark_seen(self) -> list:
        ...

    def get_content(self, message: object) -> object:
        ...


# =============================================================================
# TEST CASE INDEX (Traceability)
# =============================================================================

TEST_CASES = {
    # Normalizer tests
    "test_normalize_sets_default": {
        "contract": "NormalizeContract",
        "enforces": ["POST-NORMALIZE-01", "POST-NORMALIZE-02"],
    },
    "test_normalize_idempotent": {
        "contract": "NormalizeContract",
        "enforces": ["INV-NORMALIZE-01", "INV-NORMALIZE-02"],
    },
    "test_normalize_write_failure": {
        "contract": "NormalizeContract",
        "enforces": ["ERRORS: HEADER_WRITE"],
    },

    # Extraction tests
    "test_extract_alternative_capture": {
        "contract": "ExtractContract",
        "enforces": ["POST-EXTRACT-01", "POST-EXTRACT-03"],
    },
    "test_extract_related_resources": {
        "contract": "ExtractContract",
        "enforces": ["POST-EXTRACT-02"],
    },
    "test_extract_attachment_fallback": {
        "contract": "ExtractContract",
        "enforces": ["POST-EXTRACT-01"],
    },
    "test_extract_alternative_drops_binary": {
        "contract": "ExtractContract",
        "enforces": ["POST-EXTRACT-03"],
    },
    "test_extract_embedded_message_root": {
        "contract": "ExtractContract",
        "enforces": ["POST-EXTRACT-04"],
    },
    "test_extract_text_root_goes_to_html": {
        "contract": "ExtractContract",
        "enforces": ["POST-EXTRACT-05", "INV-EXTRACT-02"],
    },
    "test_extract_preserves_order": {
        "contract": "ExtractContract",
        "enforces": ["POST-EXTRACT-06"],
    },
    "test_extract_resets_between_calls": {
        "contract": "ExtractContract",
        "enforces": ["INV-EXTRACT-01"],
        "adversarial": True,
        "description": "Verify no residue from a previous message",
    },
    "test_extract_depth_bound": {
        "contract": "ExtractContract",
        "enforces": ["INV-EXTRACT-03", "ERRORS: DEPTH_EXCEEDED"],
        "adversarial": True,
        "description": "Verify crafted nesting fails with DepthExceededError",
    },
    "test_extract_structural_error": {
        "contract": "ExtractContract",
        "enforces": ["ERRORS: STRUCTURAL", "INV-EXTRACT-04"],
    },
    "test_extract_content_read_error": {
        "contract": "ExtractContract",
        "enforces": ["ERRORS: CONTENT_READ"],
    },
    "test_extract_no_body_logging": {
        "contract": "ExtractContract",
        "enforces": ["INV-EXTRACT-05"],
        "adversarial": True,
        "description": "Verify decoded bodies are absent from log output",
    },

    # Reader tests
    "test_reader_requires_init": {
        "contract": "ReaderContract",
        "enforces": ["PRE-READER-01", "ERRORS: NOT_INITIALIZED"],
    },
    "test_reader_connection_failed": {
        "contract": "ReaderContract",
        "enforces": ["ERRORS: CONNECTION_FAILED"],
    },
    "test_reader_auth_failed": {
        "contract": "ReaderContract",
        "enforces": ["ERRORS: AUTH_FAILED", "INV-READER-02"],
        "adversarial": True,
        "description": "Verify the password is absent from log output",
    },
    "test_password_not_in_repr": {
        "contract": "ReaderContract",
        "enforces": ["INV-READER-02"],
    },
    "test_reader_folder_not_found": {
        "contract": "ReaderContract",
        "enforces": ["ERRORS: FOLDER_NOT_FOUND"],
    },
    "test_reader_unseen_marked_seen": {
        "contract": "ReaderContract",
        "enforces": ["POST-READER-01", "INV-READER-01"],
    },
    "test_reader_mark_outside_batch": {
        "contract": "ReaderContract",
        "enforces": ["POST-READER-02"],
    },
    "test_reader_content_accessors": {
        "contract": "ReaderContract",
        "enforces": ["POST-READER-03"],
    },
    "test_reader_subject_malformed": {
        "contract": "ReaderContract",
        "enforces": ["POST-READER-03"],
        "adversarial": True,
        "description": "Verify a malformed encoded-word subject decodes with replacement",
    },
    "test_reader_flag_failure_reported": {
        "contract": "ReaderContract",
        "enforces": ["INV-READER-03"],
        "adversarial": True,
        "description": "Verify a failing STORE is logged and returns False",
    },
    "test_fetch_isolates_failed_message": {
        "contract": "ReaderContract",
        "enforces": ["POST-READER-05", "INV-EXTRACT-04"],
        "adversarial": True,
        "description": "Verify one undecodable message does not lose the batch",
    },
    "test_reader_close": {
        "contract": "ReaderContract",
        "enforces": ["POST-READER-04"],
    },
}
