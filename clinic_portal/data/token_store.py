"""
Auth token storage.

The token is looked up on every request so that a token written by another
process (or by ``clinic-portal token set``) is picked up without a restart.
"""

import json
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

import structlog

from ..core.config import AUTH_TOKEN_KEY
from ..core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


class TokenStore(Protocol):
    def get_token(self) -> Optional[str]: ...

    def set_token(self, token: str) -> None: ...

    def clear_token(self) -> None: ...


class MemoryTokenStore:
    """Token store held in process memory."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get_token(self) -> Optional[str]:
        return self._token or None

    def set_token(self, token: str) -> None:
        self._token = token

    def clear_token(self) -> None:
        self._token = None


class FileTokenStore:
    """
    Token store backed by a JSON key/value file.

    The file plays the part of browser local storage; the token lives under
    the ``authToken`` key and other keys are preserved on write.
    """

    def __init__(self, path: Union[str, Path], key: str = AUTH_TOKEN_KEY):
        self.path = Path(path).expanduser()
        self.key = key

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Local storage file {self.path} is not valid JSON: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Local storage file {self.path} must hold a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def get_token(self) -> Optional[str]:
        token = self._read().get(self.key)
        return token or None

    def set_token(self, token: str) -> None:
        data = self._read()
        data[self.key] = token
        self._write(data)
        logger.info("Auth token stored", path=str(self.path))

    def clear_token(self) -> None:
        data = self._read()
        if data.pop(self.key, None) is not None:
            self._write(data)
            logger.info("Auth token cleared", path=str(self.path))
