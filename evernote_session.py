#!/usr/bin/env python3
"""
Authenticated access to the Evernote user store and note store.

`EvernoteSession` wraps the Thrift clients for one access token.
`SessionOpener` turns the stored token into a validated session, pausing for
rate limits and falling back to the OAuth flow when the token is missing or
rejected.
"""

import http.client
import logging
import socket
import time
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import thrift.protocol.TBinaryProtocol as TBinaryProtocol
import thrift.transport.THttpClient as THttpClient
from evernote.edam.error.ttypes import (
    EDAMErrorCode,
    EDAMNotFoundException,
    EDAMSystemException,
    EDAMUserException,
)
from evernote.edam.notestore import NoteStore
from evernote.edam.userstore import UserStore
from thrift.Thrift import TException

from evernote_config import Config
from evernote_errors import (
    AuthError,
    NoStoredToken,
    RateLimited,
    TransportError,
    ValidationFailed,
    describe_error,
)
from evernote_oauth import EvernoteOAuthFlow
from token_store import TokenStore

logger = logging.getLogger(__name__)

USER_AGENT = "notebook-prefixer/0.1"


def thrift_client(client_class, url: str):
    """Build a Thrift binary-protocol client speaking HTTP to the given store URL."""
    http_client = THttpClient.THttpClient(url)
    http_client.setCustomHeaders({'User-Agent': USER_AGENT})
    protocol = TBinaryProtocol.TBinaryProtocol(http_client)
    return client_class(protocol)


def translate_error(error: Exception) -> AuthError:
    """Map an Evernote/Thrift exception onto the AuthError variants."""
    if isinstance(error, EDAMSystemException) and error.errorCode == EDAMErrorCode.RATE_LIMIT_REACHED:
        return RateLimited(error.rateLimitDuration or 0)
    if isinstance(error, (EDAMUserException, EDAMSystemException)):
        return ValidationFailed(describe_error(error), code=error.errorCode, parameter=getattr(error, "parameter", None))
    if isinstance(error, EDAMNotFoundException):
        return ValidationFailed(describe_error(error), parameter=error.identifier)
    return TransportError(describe_error(error), code=getattr(error, "code", None))


class EvernoteSession:
    """Evernote user store and note store bound to one access token."""

    def __init__(self, token: str, service_host: str):
        self.token = token
        self.service_host = service_host
        self.user_store = thrift_client(UserStore.Client, f"https://{service_host}/edam/user")
        self._note_store = None

    @property
    def note_store(self):
        if self._note_store is None:
            url = self.user_store.getNoteStoreUrl(self.token)
            self._note_store = thrift_client(NoteStore.Client, url)
        return self._note_store

    def get_sync_state(self):
        return self.note_store.getSyncState(self.token)

    def get_user(self):
        return self.user_store.getUser(self.token)

    def list_notebooks(self) -> List:
        return self.note_store.listNotebooks(self.token)

    def update_notebook(self, notebook) -> int:
        return self.note_store.updateNotebook(self.token, notebook)

    def validate(self):
        """Cheap sync-state check plus user lookup; both must succeed. Returns the user."""
        try:
            self.get_sync_state()
            user = self.get_user()
        except (EDAMUserException, EDAMSystemException, EDAMNotFoundException, TException, socket.error,
                http.client.HTTPException) as e:
            raise translate_error(e) from e
        logger.debug(f"connected to {user.username}")
        return user


class SessionOpener:
    """Produces a validated EvernoteSession, running the OAuth flow when needed."""

    def __init__(
        self,
        config: Config,
        token_store: TokenStore,
        oauth_flow: Optional[EvernoteOAuthFlow] = None,
        session_factory: Callable[[str, str], EvernoteSession] = EvernoteSession,
    ):
        self.config = config
        self.token_store = token_store
        self.oauth_flow = oauth_flow or EvernoteOAuthFlow(config, token_store)
        self.session_factory = session_factory

    def session_from_stored_token(self) -> EvernoteSession:
        token = self.token_store.load()
        if not token:
            raise NoStoredToken()
        logger.debug('retrieved stored token')

        session = self.session_factory(token, self.config.service_host)
        logger.debug('validating stored token')
        session.validate()
        return session

    def pause_until_rate_limit_reset(self, duration: int) -> None:
        now = datetime.now()
        logger.warning(f"Rate limit reached. Taking a nap from {now.isoformat()} "
                       f"until {(now + timedelta(seconds=duration)).isoformat()}")
        time.sleep(duration)

    def open(self) -> EvernoteSession:
        """Validate the stored token, falling back to one OAuth run; the last failure propagates."""
        while True:
            try:
                return self.session_from_stored_token()
            except RateLimited as e:
                self.pause_until_rate_limit_reset(e.duration)
            except NoStoredToken:
                logger.info('No tokens found in the token store')
                break
            except AuthError as e:
                logger.error(f"error with existing access token: {describe_error(e)}")
                break

        logger.debug('retrieving new tokens')
        self.oauth_flow.refresh_access_token(self.config.callback_url)
        logger.debug('validating the new token')
        return self.session_from_stored_token()
