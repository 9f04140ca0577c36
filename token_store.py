"""Persist the Evernote access token as a small JSON document."""

import json
import logging
import pathlib
from typing import Union

logger = logging.getLogger(__name__)


class TokenStore:
    """Reads and writes `{"accessToken": "..."}` at a fixed path."""

    def __init__(self, path: Union[str, pathlib.Path]):
        self.path = pathlib.Path(path)

    def load(self) -> str:
        """Return the stored access token, or an empty string if none was saved."""
        if not self.path.exists():
            logger.debug(f"No token file at {self.path}")
            return ""
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return data.get("accessToken", "") or ""

    def save(self, token: str) -> None:
        """Overwrite the token file with the given access token."""
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({"accessToken": token}, f)
        logger.debug(f"Stored access token in {self.path}")
