"""
Reader Settings
===============

Static configuration for the reader and the extraction walker.
"""

from dataclasses import dataclass

DEFAULT_MAILBOX = "INBOX"
TRANSFER_ENCODING_DEFAULT = "quoted-printable"
TRANSFER_ENCODING_BASE64 = "Base64"
MAX_DEPTH_DEFAULT = 32


@dataclass(frozen=True)
class ReaderSettings:
    """
    Reader configuration.

    transfer_encoding is written verbatim into parts lacking a
    Content-Transfer-Encoding header; any token is accepted.
    """

    default_mailbox: str = DEFAULT_MAILBOX
    transfer_encoding: str = TRANSFER_ENCODING_DEFAULT
    max_depth: int = MAX_DEPTH_DEFAULT
