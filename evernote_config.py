#!/usr/bin/env python3
"""
Configuration for the Evernote notebook stack prefixer

Values come from environment variables (a local .env file is honoured).
CONSUMER_KEY and CONSUMER_SECRET are your Evernote API key pair and are
required; everything else has a sensible default.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from evernote_errors import ConfigurationError

# Local OAuth callback
CALLBACK_PORT = 5001
CALLBACK_TIMEOUT = None  # seconds, None waits for the browser forever

# Token persistence
TOKEN_FILENAME = "evernote_token.json"

# Evernote service hosts
PRODUCTION_HOST = "www.evernote.com"
SANDBOX_HOST = "sandbox.evernote.com"


@dataclass(frozen=True)
class Config:
    """Consumer credentials plus the local settings the OAuth flow needs."""

    consumer_key: str
    consumer_secret: str
    callback_port: int = CALLBACK_PORT
    token_filename: str = TOKEN_FILENAME
    sandbox: bool = False
    callback_timeout: Optional[float] = CALLBACK_TIMEOUT

    @property
    def callback_url(self) -> str:
        return f"http://localhost:{self.callback_port}/callback"

    @property
    def service_host(self) -> str:
        return SANDBOX_HOST if self.sandbox else PRODUCTION_HOST


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build a Config from the environment, failing if credentials are missing."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    consumer_key = environ.get("CONSUMER_KEY")
    consumer_secret = environ.get("CONSUMER_SECRET")
    if not consumer_key or not consumer_secret:
        raise ConfigurationError("CONSUMER_KEY or CONSUMER_SECRET not set")

    try:
        callback_port = int(environ.get("EVERNOTE_CALLBACK_PORT", CALLBACK_PORT))
        timeout = environ.get("EVERNOTE_CALLBACK_TIMEOUT")
        callback_timeout = float(timeout) if timeout else CALLBACK_TIMEOUT
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e

    return Config(
        consumer_key=consumer_key,
        consumer_secret=consumer_secret,
        callback_port=callback_port,
        token_filename=environ.get("EVERNOTE_TOKEN_FILE", TOKEN_FILENAME),
        sandbox=_parse_bool(environ.get("EVERNOTE_SANDBOX", "false")),
        callback_timeout=callback_timeout,
    )
