"""
Credentials Management
======================

Mail account credentials, stored as JSON in the biosecret keychain under
"mime-reader/<account_id>" and read once at startup by the mime-reader
entry point.

INV-READER-02: Credentials held in memory only, never logged.
"""

import json
import subprocess
from dataclasses import dataclass, field

from contracts import (
    BiosecretDeniedError,
    BiosecretNotFoundError,
)

KEYCHAIN_PREFIX = "mime-reader"
BIOSECRET_TIMEOUT = 30

IMAPS_PORT = 993


@dataclass(frozen=True)
class Credentials:
    """IMAP account credentials."""

    username: str
    password: str = field(repr=False)
    server: str
    port: int = IMAPS_PORT
    use_ssl: bool = True

    @classmethod
    def from_mapping(cls, data: dict) -> "Credentials":
        """
        Build credentials from a stored keychain entry.

        "host" and "email" are accepted for server and username. Without
        an explicit use_ssl, TLS is used only on the IMAPS port.
        """
        port = int(data.get("port", IMAPS_PORT))
        return cls(
            username=data.get("username") or data["email"],
            password=data["password"],
            server=data.get("server") or data["host"],
            port=port,
            use_ssl=bool(data.get("use_ssl", port == IMAPS_PORT)),
        )


def keychain_key(account_id: str) -> str:
    return f"{KEYCHAIN_PREFIX}/{account_id}"


def retrieve_credentials(account_id: str) -> Credentials:
    """
    Retrieve credentials via biosecret CLI.

    PRE: biosecret CLI is available in PATH
    PRE: a JSON entry is stored under keychain_key(account_id)

    ERRORS:
    - BiosecretDeniedError: User cancelled biometric prompt or it timed out
    - BiosecretNotFoundError: No entry, unusable entry, or no CLI
    """
    key = keychain_key(account_id)
    try:
        result = subprocess.run(
            ["biosecret", "get", key],
            capture_output=True,
            text=True,
            timeout=BIOSECRET_TIMEOUT,
        )
    except subprocess.TimeoutExpired as e:
        raise BiosecretDeniedError("Biometric authentication timed out") from e
    except FileNotFoundError as e:
        raise BiosecretNotFoundError("biosecret CLI not found in PATH") from e

    if result.returncode != 0:
        stderr = (result.stderr or "").lower()
        if "cancel" in stderr or "denied" in stderr:
            raise BiosecretDeniedError("User cancelled biometric authentication")
        raise BiosecretNotFoundError(f"No credentials stored under {key}")

    # The entry holds the password, so parse errors never echo it
    try:
        return Credentials.from_mapping(json.loads(result.stdout))
    except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
        raise BiosecretNotFoundError(
            f"Unusable credential entry under {key}: {e.__class__.__name__}"
        ) from None
