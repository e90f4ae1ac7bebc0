"""
MIME Mail Reader
================

Unseen-mail IMAP reader with a MIME extraction engine that splits each
message into text, html, inline sources and attachments.
"""

__version__ = "0.1.0"

from mime_reader.config import ReaderSettings
from mime_reader.credentials import Credentials, retrieve_credentials
from mime_reader.extraction import ExtractionState, MimeWalker, ensure_encoding
from mime_reader.imap_reader import FetchedMessage, ImapMailReader
from mime_reader.parts import MimePart
from mime_reader.server import MailReaderMCPServer, create_server, get_server, main

__all__ = [
    "MailReaderMCPServer",
    "get_server",
    "create_server",
    "main",
    "ImapMailReader",
    "FetchedMessage",
    "MimeWalker",
    "ExtractionState",
    "MimePart",
    "ensure_encoding",
    "ReaderSettings",
    "Credentials",
    "retrieve_credentials",
]
