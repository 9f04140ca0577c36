#!/usr/bin/env python3
"""
Evernote OAuth 1.0a flow

Runs the three-legged exchange: temporary credentials, user consent in the
browser, verifier capture on a local callback listener, access-token exchange.
Each step runs once and in order; a failing step aborts the whole flow and
nothing is persisted.
"""

import logging
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional

import requests
from requests_oauthlib import OAuth1Session
from requests_oauthlib.oauth1_session import TokenMissing, TokenRequestDenied

from callback_listener import CallbackListener
from evernote_config import Config
from evernote_errors import TransportError
from token_store import TokenStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemporaryToken:
    """Short-lived request token pair, only valid for one exchange."""

    token: str
    secret: str


class EvernoteOAuthFlow:
    """Obtains a fresh access token and writes it to the token store."""

    def __init__(
        self,
        config: Config,
        token_store: TokenStore,
        open_browser: Callable[[str], bool] = webbrowser.open,
        listener_factory: Callable[..., CallbackListener] = CallbackListener,
    ):
        self.config = config
        self.token_store = token_store
        self.open_browser = open_browser
        self.listener_factory = listener_factory

    @property
    def oauth_url(self) -> str:
        return f"https://{self.config.service_host}/oauth"

    @property
    def authorize_base_url(self) -> str:
        return f"https://{self.config.service_host}/OAuth.action"

    def _session(self, **kwargs) -> OAuth1Session:
        return OAuth1Session(
            client_key=self.config.consumer_key,
            client_secret=self.config.consumer_secret,
            **kwargs
        )

    def _fetch(self, action: str, fetch: Callable[[], dict]) -> dict:
        """Run one token request and translate library failures into TransportError."""
        try:
            return fetch()
        except TokenRequestDenied as e:
            raise TransportError(f"{action} denied: {e}", code=e.status_code) from e
        except TokenMissing as e:
            raise TransportError(f"{action} returned no token: {e}") from e
        except requests.exceptions.RequestException as e:
            status = e.response.status_code if e.response is not None else None
            raise TransportError(f"{action} failed: {e}", code=status) from e
        except ValueError as e:
            raise TransportError(f"{action} returned an unreadable response: {e}") from e

    def request_temporary_token(self, callback_url: str) -> TemporaryToken:
        """Leg one: ask for temporary credentials bound to our callback URL."""
        session = self._session(callback_uri=callback_url)
        result = self._fetch("temporary token request",
                             lambda: session.fetch_request_token(self.oauth_url))
        logger.info(f"temporary token request results: {sorted(result.keys())}")
        return TemporaryToken(token=result["oauth_token"], secret=result["oauth_token_secret"])

    def get_authorize_url(self, temp_token: TemporaryToken) -> str:
        return self._session().authorization_url(self.authorize_base_url, request_token=temp_token.token)

    def request_oauth_verifier(self, authorize_url: str) -> str:
        """Leg two: start the callback listener, send the user to consent, wait for the redirect."""
        listener = self.listener_factory(self.config.callback_port, timeout=self.config.callback_timeout)
        listener.start()
        logger.debug('opening browser to retrieve oauth_verifier')
        try:
            opened = self.open_browser(authorize_url)
        except Exception:
            listener.close()
            raise
        if not opened:
            logger.warning(f"Could not open a browser, please visit: {authorize_url}")
        return listener.wait()

    def request_access_token(self, temp_token: TemporaryToken, verifier: str) -> str:
        """Leg three: trade the authorised temporary token for an access token."""
        session = self._session(
            resource_owner_key=temp_token.token,
            resource_owner_secret=temp_token.secret,
            verifier=verifier,
        )
        result = self._fetch("access token request", lambda: session.fetch_access_token(self.oauth_url))
        return result["oauth_token"]

    def flow_to_access_token(self, callback_url: Optional[str] = None) -> str:
        callback_url = callback_url or self.config.callback_url
        logger.debug('requesting temporary token')
        temp_token = self.request_temporary_token(callback_url)

        logger.debug('requesting authorisation url')
        authorize_url = self.get_authorize_url(temp_token)
        logger.info(f"authorize_url: {authorize_url}")

        logger.debug('requesting oauth verifier')
        verifier = self.request_oauth_verifier(authorize_url)

        logger.debug('requesting access token')
        return self.request_access_token(temp_token, verifier)

    def refresh_access_token(self, callback_url: Optional[str] = None) -> str:
        """Run the full flow and persist the resulting access token."""
        access_token = self.flow_to_access_token(callback_url)
        self.token_store.save(access_token)
        logger.info("Stored new access token")
        return access_token
