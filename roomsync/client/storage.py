"""Local client storage for saved session credentials."""
import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..shared.dto import Credentials

OWNER_ONLY = 0o600

logger = logging.getLogger(__name__)


class CredentialStore:
    """Key-value persistence for the session credential record."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Credentials]:
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return Credentials.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("CREDENTIALS_UNREADABLE path=%s reason=%s", self.path, exc)
            return None

    def save(self, creds: Credentials) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, OWNER_ONLY)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(creds.to_dict(), f, indent=2)
        # An existing file keeps its old mode through os.open.
        os.chmod(self.path, OWNER_ONLY)
        logger.info("CREDENTIALS_SAVED user=%s", creds.user_id)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        logger.info("CREDENTIALS_CLEARED path=%s", self.path)
