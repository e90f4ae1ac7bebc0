"""
Mail Reader MCP Server
======================

MCP server exposing unseen-mail reading with MIME extraction.

CONTRACT INVARIANTS ENFORCED:
- INV-EXTRACT-05: No logging of message bodies or attachments
- INV-READER-01: Only the \\Seen flag is modified
- INV-READER-02: Credentials never logged
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from dataclasses import asdict
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from contracts import (
    ConnectionStatus,
    ExtractedMessage,
    ExtractionFailure,
    MimeReaderError,
    NotInitializedError,
)
from mime_reader.config import DEFAULT_MAILBOX, TRANSFER_ENCODING_DEFAULT, ReaderSettings
from mime_reader.credentials import Credentials, retrieve_credentials
from mime_reader.imap_reader import FetchedMessage, ImapMailReader
from mime_reader.parts import summarize

# Configure logging to NEVER include message content (INV-EXTRACT-05)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("mime-reader")


class MailReaderMCPServer:
    """
    Mail Reader MCP Server.

    Holds a single reader per process; tool calls are serialized by the
    MCP runtime.
    """

    def __init__(self) -> None:
        self._reader: ImapMailReader | None = None
        self._server = Server("mime-reader")
        self._setup_tools()

    def _setup_tools(self) -> None:
        """Register MCP tools."""

        @self._server.list_tools()
        async def list_tools() -> list[Tool]:
            return [
                Tool(
                    name="mail_fetch_unseen",
                    description=(
                        "Fetch unseen messages, mark them seen, and return their "
                        "text, html, inline sources and attachments"
                    ),
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "folder": {
                                "type": "string",
                                "description": "Folder name (default: configured mailbox)",
                            },
                        },
                    },
                ),
                Tool(
                    name="mail_mark_seen",
                    description="Set or clear the \\Seen flag of a fetched message",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "uid": {
                                "type": "integer",
                                "description": "UID of a message from the last fetch",
                            },
                            "seen": {
                                "type": "boolean",
                                "description": "True to mark seen, False to mark unseen",
                                "default": True,
                            },
                        },
                        "required": ["uid"],
                    },
                ),
                Tool(
                    name="mail_status",
                    description="Get current connection status",
                    inputSchema={
                        "type": "object",
                        "properties": {},
                    },
                ),
            ]

        @self._server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            try:
                if name == "mail_fetch_unseen":
                    result = self.mail_fetch_unseen(**arguments)
                elif name == "mail_mark_seen":
                    result = self.mail_mark_seen(**arguments)
                elif name == "mail_status":
                    result = self.mail_status()
                else:
                    return [TextContent(type="text", text=f"Unknown tool: {name}")]

                return [TextContent(type="text", text=self._serialize_result(result))]

            except MimeReaderError as e:
                return [TextContent(type="text", text=f"Error: {e.__class__.__name__}: {e}")]

    def connect(self, credentials: Credentials, settings: ReaderSettings | None = None) -> None:
        """Initialize the single reader of this process."""
        if self._reader is not None:
            raise RuntimeError("Reader already connected")

        reader = ImapMailReader(credentials, settings)
        reader.init()
        self._reader = reader
        logger.info("Connected to mail server")  # No credentials logged (INV-READER-02)

    def disconnect(self) -> None:
        """Close and drop the reader."""
        if self._reader:
            self._reader.close()
            self._reader = None
            logger.info("Disconnected from mail server")

    def _require_reader(self) -> ImapMailReader:
        if self._reader is None or not self._reader.initialized:
            raise NotInitializedError("Not connected to mail server")
        return self._reader

    def mail_fetch_unseen(self, *, folder: str | None = None) -> dict:
        """
        Fetch and extract all unseen messages.

        Each message is copied out of the reader's extraction state before
        the next one is extracted.

        POST-READER-05: a message that fails extraction is reported under
        "failed" and its \\Seen flag is cleared again
        """
        reader = self._require_reader()
        if folder is not None:
            reader.use_folder(folder)

        # Log operation but NEVER log message content (INV-EXTRACT-05)
        logger.info("Fetching unseen messages from %s", folder or "default folder")
        messages = []
        failed = []
        for fetched in reader.get_unseen_and_mark_seen():
            try:
                messages.append(self._extract(reader, fetched))
            except MimeReaderError as e:
                logger.warning("Extraction failed for uid %s: %s", fetched.uid, e.__class__.__name__)
                failed.append(
                    ExtractionFailure(
                        uid=fetched.uid,
                        error=f"{e.__class__.__name__}: {e}",
                        restored_unseen=reader.mark_seen(fetched, False),
                    )
                )

        return {
            "messages": messages,
            "failed": failed,
            "folder": reader.folder,
        }

    def mail_mark_seen(self, *, uid: int, seen: bool = True) -> dict:
        reader = self._require_reader()
        logger.info("Setting seen=%s on uid %s", seen, uid)
        return {
            "uid": uid,
            "seen": seen,
            "updated": reader.mark_seen_by_uid(uid, seen),
        }

    def mail_status(self) -> ConnectionStatus:
        """Always succeeds; reports disconnected when no reader exists."""
        if self._reader is None:
            return ConnectionStatus(
                connected=False,
                server="",
                folder=None,
                uptime_seconds=0,
            )
        return self._reader.get_status()

    def _extract(self, reader: ImapMailReader, fetched: FetchedMessage) -> ExtractedMessage:
        state = reader.get_content(fetched)
        return ExtractedMessage(
            uid=fetched.uid,
            subject=reader.get_subject(fetched),
            text=state.text,
            html=state.html,
            sources=[summarize(part) for part in state.sources],
            attachments=[summarize(part) for part in state.attachments],
        )

    def _serialize_result(self, result: Any) -> str:
        """Serialize result to JSON string."""

        def default_serializer(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return asdict(obj)
            raise TypeError(f"Cannot serialize {type(obj)}")

        return json.dumps(result, default=default_serializer, indent=2)

    async def run(self) -> None:
        """Run the MCP server."""
        async with stdio_server() as (read_stream, write_stream):
            await self._server.run(
                read_stream, write_stream, self._server.create_initialization_options()
            )


# Singleton for process lifetime
_server_instance: MailReaderMCPServer | None = None


def get_server() -> MailReaderMCPServer:
    """Get or create the server singleton."""
    global _server_instance
    if _server_instance is None:
        _server_instance = MailReaderMCPServer()
    return _server_instance


def create_server() -> MailReaderMCPServer:
    """Create a new server instance (for testing)."""
    return MailReaderMCPServer()


def main(argv: list[str] | None = None) -> int:
    """
    Console entry point.

    Retrieves credentials for the account via biosecret, connects, and
    serves MCP over stdio. Startup errors are fatal and return 1.
    """
    parser = argparse.ArgumentParser(
        prog="mime-reader",
        description="Serve unseen-mail reading with MIME extraction over MCP stdio",
    )
    parser.add_argument("account_id", help="biosecret key suffix (mime-reader/<account_id>)")
    parser.add_argument("--mailbox", default=DEFAULT_MAILBOX, help="default mailbox")
    parser.add_argument(
        "--transfer-encoding",
        default=TRANSFER_ENCODING_DEFAULT,
        help="Content-Transfer-Encoding assumed for text parts that declare none",
    )
    args = parser.parse_args(argv)

    settings = ReaderSettings(
        default_mailbox=args.mailbox,
        transfer_encoding=args.transfer_encoding,
    )
    server = get_server()
    try:
        server.connect(retrieve_credentials(args.account_id), settings)
    except MimeReaderError as e:
        logger.error("Startup failed: %s: %s", e.__class__.__name__, e)
        return 1

    try:
        asyncio.run(server.run())
    finally:
        server.disconnect()
    return 0
