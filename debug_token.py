#!/usr/bin/env python3
"""
Debug script to check the stored Evernote token and see what the prefixer would work on
"""

import sys

from evernote_config import load_config
from evernote_errors import AuthError, ConfigurationError, describe_error
from evernote_session import EvernoteSession
from token_store import TokenStore


def debug_token(session_factory=EvernoteSession) -> int:
    """Validate the stored token and list notebooks by stack. Never runs OAuth, never writes."""
    try:
        config = load_config()
    except ConfigurationError as e:
        print(f"❌ {e}")
        return 1

    store = TokenStore(config.token_filename)
    token = store.load()
    if not token:
        print(f"❌ No stored token in {store.path}, run notebook-prefixer to authenticate")
        return 1
    print(f"✅ Found stored token in {store.path}")

    session = session_factory(token, config.service_host)

    print("\n🔍 Validating token...")
    try:
        user = session.validate()
    except AuthError as e:
        print(f"❌ Token rejected: {describe_error(e)}")
        return 1
    print(f"✅ Connected as {user.username}")

    print("\n🔍 Listing notebooks...")
    notebooks = session.list_notebooks()
    print(f"  Found {len(notebooks)} notebooks")
    for notebook in notebooks:
        stack = notebook.stack or "(no stack)"
        print(f"  {stack} / {notebook.name}")
    return 0


if __name__ == "__main__":
    sys.exit(debug_token())
