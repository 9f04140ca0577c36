#!/usr/bin/env python3
"""
Evernote Notebook Stack Prefixer

A CLI tool that prefixes every Evernote notebook living in a stack with the
stack name ("Work" / "Foo" becomes "Work" / "Work_Foo"). Notebooks outside a
stack and notebooks that already carry the prefix are left alone, so running
it again changes nothing.
Uses Evernote OAuth 1.0a with a local callback server for authentication.
"""

import logging
import sys
from typing import List, Optional, Tuple

from evernote_config import load_config
from evernote_errors import ConfigurationError, describe_error
from evernote_session import EvernoteSession, SessionOpener
from token_store import TokenStore

LOG_FILE = "notebook_prefixer.log"

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE),
            logging.StreamHandler()
        ]
    )


def prefixed_name(name: str, stack: Optional[str]) -> Optional[str]:
    """Return the stack-prefixed name, or None when the notebook needs no rename."""
    if not stack:
        return None
    prefix = f"{stack}_"
    if name.startswith(prefix):
        return None
    return prefix + name


class NotebookRenamer:
    """Renames notebooks to "<stack>_<name>" through an authenticated session."""

    def __init__(self, session: EvernoteSession):
        self.session = session

    def prefix_notebook_name_if_needed(self, notebook) -> Optional[Tuple[str, str]]:
        current_name = notebook.name
        new_name = prefixed_name(current_name, notebook.stack)
        if new_name is None:
            logger.info(f"{notebook.stack} / {current_name}\t-> skipping, already prefixed")
            return None

        notebook.name = new_name
        logger.info(f"{notebook.stack} / {current_name}\t-> {notebook.stack} / {new_name}")
        self.session.update_notebook(notebook)
        return current_name, new_name

    def rename_remaining_notebooks(self) -> List[Tuple[str, str]]:
        """Walk the notebooks in listing order; a failed update stops the pass."""
        notebooks = self.session.list_notebooks()
        logger.info(f"Found {len(notebooks)} notebooks")

        renamed = []
        for notebook in notebooks:
            if not notebook.stack:
                logger.info(f"{notebook.name}\t-> skipping, not in a stack")
                continue
            result = self.prefix_notebook_name_if_needed(notebook)
            if result:
                renamed.append(result)
        return renamed


def main():
    """Main entry point."""
    setup_logging()

    try:
        config = load_config()
    except ConfigurationError as e:
        logger.error(f"ERROR: {e}")
        sys.exit(1)

    try:
        opener = SessionOpener(config, TokenStore(config.token_filename))
        session = opener.open()
        renamed = NotebookRenamer(session).rename_remaining_notebooks()
        logger.info(f"Renamed {len(renamed)} notebooks")

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Rename failed: {describe_error(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
