"""
IMAP Mail Reader
================

Reader facade: fetches unseen messages over IMAP, marks them seen, and
exposes the MIME extraction of one message at a time.

CONTRACT INVARIANTS:
- INV-READER-01: Only the \\Seen flag is modified
- INV-READER-02: Credentials never logged
- INV-READER-03: Flag update failures are logged and reported, not raised
"""

from __future__ import annotations

import email
import logging
from dataclasses import dataclass, field
from datetime import datetime
from email.message import Message
from typing import TYPE_CHECKING

from imapclient import IMAPClient

from contracts import (
    AuthFailedError,
    ConnectionFailedError,
    ConnectionStatus,
    FolderNotFoundError,
    NotInitializedError,
)
from mime_reader.config import ReaderSettings
from mime_reader.extraction import ExtractionState, MimeWalker
from mime_reader.parts import MimePart, decode_header_value

if TYPE_CHECKING:
    from mime_reader.credentials import Credentials

logger = logging.getLogger(__name__)

SEEN_FLAG = b"\\Seen"


@dataclass
class FetchedMessage:
    """A message of the current batch together with its IMAP identity."""

    uid: int
    message: Message
    flags: list[str] = field(default_factory=list)

    @property
    def seen(self) -> bool:
        return "\\Seen" in self.flags


class ImapMailReader:
    """
    Unseen-mail reader over a single IMAP connection.

    Not thread-safe: one extraction at a time per reader.
    """

    def __init__(self, credentials: Credentials, settings: ReaderSettings | None = None) -> None:
        self._credentials = credentials
        self._settings = settings or ReaderSettings()
        self._client: IMAPClient | None = None
        self._initialized: bool = False
        self._folder: str | None = None
        self._readonly: bool = False
        self._start_time: datetime | None = None
        self._reading: list[FetchedMessage] = []
        self._walker = MimeWalker(
            transfer_encoding=self._settings.transfer_encoding,
            max_depth=self._settings.max_depth,
        )

    def __enter__(self) -> ImapMailReader:
        self.init()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def initialized(self) -> bool:
        return self._initialized and self._client is not None

    @property
    def folder(self) -> str | None:
        return self._folder

    @property
    def reading_messages(self) -> list[FetchedMessage]:
        """Batch returned by the last get_unseen_and_mark_seen() call."""
        return list(self._reading)

    def init(self) -> None:
        """
        Connect and authenticate to the IMAP server.

        ERRORS:
        - ConnectionFailedError: server unreachable
        - AuthFailedError: login rejected
        """
        credentials = self._credentials
        try:
            self._client = IMAPClient(
                credentials.server,
                port=credentials.port,
                ssl=credentials.use_ssl,
            )
        except Exception as e:
            raise ConnectionFailedError(f"Failed to connect to {credentials.server}: {e}") from e

        try:
            self._client.login(credentials.username, credentials.password)
        except Exception as e:
            self._client = None
            # INV-READER-02: never include the password
            logger.error("IMAP login failed for %s on %s", credentials.username, credentials.server)
            raise AuthFailedError(f"Authentication failed: {e}") from e

        self._initialized = True
        self._start_time = datetime.now()
        logger.info("Connected to %s", credentials.server)

    def _require_init(self) -> IMAPClient:
        if not self._initialized or self._client is None:
            raise NotInitializedError("Reader is not initialized, call init() first")
        return self._client

    @property
    def transfer_encoding(self) -> str:
        return self._walker.transfer_encoding

    def set_transfer_encoding(self, encoding: str) -> None:
        """
        Set the Content-Transfer-Encoding written into text parts that
        declare none. Default "quoted-printable"; "Base64" is the usual
        alternative. The value is not validated.
        """
        self._walker.transfer_encoding = encoding

    def use_default_folder(self, readonly: bool = False) -> None:
        self.use_folder(self._settings.default_mailbox, readonly=readonly)

    def use_folder(self, mailbox: str, readonly: bool = False) -> None:
        """Select mailbox, read-write unless readonly."""
        client = self._require_init()
        try:
            client.select_folder(mailbox, readonly=readonly)
        except Exception as e:
            raise FolderNotFoundError(f"Folder not found: {mailbox}") from e
        self._folder = mailbox
        self._readonly = readonly
        logger.info("Selected folder %s (readonly=%s)", mailbox, readonly)

    def get_unseen_and_mark_seen(self) -> list[FetchedMessage]:
        """
        Fetch every UNSEEN message of the selected folder and mark it seen.

        Selects the default folder when none is open, and reselects the
        current folder read-write when it was opened readonly.

        POST-READER-01: returned messages carry \\Seen on the server
        """
        client = self._require_init()
        if self._folder is None:
            self.use_default_folder(readonly=False)
        elif self._readonly:
            self.use_folder(self._folder, readonly=False)

        uids = sorted(client.search(["UNSEEN"]))

        batch = []
        if uids:
            # BODY.PEEK so the fetch itself leaves flags alone
            fetch_data = client.fetch(uids, ["FLAGS", "BODY.PEEK[]"])
            for uid in uids:
                data = fetch_data.get(uid)
                if not data:
                    continue
                raw = data.get(b"BODY[]") or data.get(b"BODY.PEEK[]")
                if not raw:
                    continue
                flags = [f.decode() if isinstance(f, bytes) else f for f in data.get(b"FLAGS", ())]
                batch.append(
                    FetchedMessage(uid=uid, message=email.message_from_bytes(raw), flags=flags)
                )

        self._reading = batch
        for fetched in batch:
            self.mark_seen(fetched, True)

        logger.info("Fetched %d unseen messages from %s", len(batch), self._folder)
        return list(batch)

    def mark_seen_by_index(self, index: int, flag: bool) -> bool:
        """Set or clear \\Seen on the index-th message of the current batch."""
        if 0 <= index < len(self._reading):
            self.mark_seen(self._reading[index], flag)
            return True
        return False

    def mark_seen_by_uid(self, uid: int, flag: bool) -> bool:
        """Set or clear \\Seen on the batch message with this UID."""
        for fetched in self._reading:
            if fetched.uid == uid:
                self.mark_seen(fetched, flag)
                return True
        return False

    def mark_seen(self, message: FetchedMessage, flag: bool) -> bool:
        """
        Set or clear \\Seen on one message.

        INV-READER-01: only \\Seen is touched
        INV-READER-03: a failure is logged and returns False
        """
        client = self._require_init()
        try:
            if flag:
                client.add_flags([message.uid], [SEEN_FLAG])
            else:
                client.remove_flags([message.uid], [SEEN_FLAG])
        except Exception:
            logger.exception("Failed to update \\Seen flag for uid %s", message.uid)
            return False

        if flag and not message.seen:
            message.flags.append("\\Seen")
        elif not flag:
            message.flags[:] = [f for f in message.flags if f != "\\Seen"]
        return True

    def get_subject(self, message: FetchedMessage | Message) -> str:
        msg = message.message if isinstance(message, FetchedMessage) else message
        return decode_header_value(msg.get("Subject", ""))

    def get_content(self, message: FetchedMessage | Message | MimePart) -> ExtractionState:
        """
        Extract text, html, sources and attachments of message.

        The result stays available through the content properties until
        the next call.
        """
        msg = message.message if isinstance(message, FetchedMessage) else message
        return self._walker.extract(msg)

    @property
    def text_content(self) -> str:
        return self._walker.state.text

    @text_content.setter
    def text_content(self, value: str) -> None:
        self._walker.state.text = value

    @property
    def html_content(self) -> str:
        return self._walker.state.html

    @html_content.setter
    def html_content(self, value: str) -> None:
        self._walker.state.html = value

    @property
    def sources(self) -> list[MimePart]:
        return self._walker.state.sources

    @sources.setter
    def sources(self, value: list[MimePart]) -> None:
        self._walker.state.sources = value

    @property
    def attachments(self) -> list[MimePart]:
        return self._walker.state.attachments

    @attachments.setter
    def attachments(self, value: list[MimePart]) -> None:
        self._walker.state.attachments = value

    def get_status(self) -> ConnectionStatus:
        uptime = 0
        if self._start_time and self.initialized:
            uptime = int((datetime.now() - self._start_time).total_seconds())

        return ConnectionStatus(
            connected=self.initialized,
            server=self._credentials.server,
            folder=self._folder,
            uptime_seconds=uptime,
        )

    def close(self) -> None:
        """
        Log out. Failures are logged, not raised.

        CLOSE is never sent since it would expunge the selected folder.
        """
        if self._client is not None:
            try:
                self._client.logout()
            except Exception:
                logger.warning("Exception when logging out of %s", self._credentials.server)

        self._client = None
        self._initialized = False
        self._folder = None
        self._readonly = False
        self._start_time = None
        self._reading = []
