"""
Storage for the Readwise access token.

The merger only talks to a :class:`TokenStore`; where the token is kept is up to the implementation.
"""
import os
from pathlib import Path
from typing import Callable, Optional, Protocol

from structlog import get_logger

from .settings import Settings

logger = get_logger(__name__)

TokenPrompt = Callable[[], Optional[str]]
""" Asks the user for a token. Returns `None` if the user cancels. """


class TokenStore(Protocol):
    def get(self) -> Optional[str]: ...
    def set(self, token: str) -> bool: ...
    def delete(self) -> bool: ...


class MemoryTokenStore(TokenStore):
    """
    Keeps the token for the lifetime of the process only.
    """

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> bool:
        if not token or not token.strip():
            return False
        self._token = token.strip()
        return True

    def delete(self) -> bool:
        self._token = None
        return True


class FileTokenStore(TokenStore):
    """
    Keeps the token in a file readable only by the current user.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self) -> Optional[str]:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read token file %s: %s", self.path, e)
            return None

        return token or None

    def set(self, token: str) -> bool:
        if not token or not token.strip():
            return False

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(token.strip())
            # Mode of an existing file is not changed by open()
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.warning("Could not write token file %s: %s", self.path, e)
            return False

        logger.debug("Stored token into %s", self.path)
        return True

    def delete(self) -> bool:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove token file %s: %s", self.path, e)
            return False
        return True


def create_token_store(settings: Settings) -> TokenStore:
    """Factory function for the token storage backend."""
    return FileTokenStore(settings.TOKEN_FILE)


def prompt_for_token(store: TokenStore, prompt: Optional[TokenPrompt]) -> Optional[str]:
    """
    Ask the user for a token and store it for later use.

    :return: The token, or `None` if the user gave none or it couldn't be stored.
    """
    if prompt is None:
        return None

    token = prompt()
    if not token or not token.strip():
        logger.debug("No token given")
        return None

    token = token.strip()
    if not store.set(token):
        return None

    return token
