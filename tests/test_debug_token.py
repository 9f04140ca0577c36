"""
Tests for the stored-token diagnostics script
"""

from types import SimpleNamespace
from unittest.mock import Mock, patch

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from debug_token import debug_token
from evernote_config import Config
from evernote_errors import ValidationFailed
from token_store import TokenStore


def test_no_stored_token(tmp_path, capsys):
    config = Config("k", "s", token_filename=str(tmp_path / "token.json"))
    factory = Mock()

    with patch('debug_token.load_config', return_value=config):
        assert debug_token(factory) == 1

    assert "No stored token" in capsys.readouterr().out
    factory.assert_not_called()


def test_lists_notebooks(tmp_path, capsys):
    config = Config("k", "s", token_filename=str(tmp_path / "token.json"))
    TokenStore(config.token_filename).save("token-1")
    session = Mock()
    session.validate.return_value = SimpleNamespace(username="alice")
    session.list_notebooks.return_value = [
        SimpleNamespace(name="Foo", stack="Work"),
        SimpleNamespace(name="Inbox", stack=None),
    ]

    with patch('debug_token.load_config', return_value=config):
        assert debug_token(Mock(return_value=session)) == 0

    out = capsys.readouterr().out
    assert "Connected as alice" in out
    assert "Work / Foo" in out
    assert "(no stack) / Inbox" in out
    session.update_notebook.assert_not_called()


def test_rejected_token(tmp_path, capsys):
    config = Config("k", "s", token_filename=str(tmp_path / "token.json"))
    TokenStore(config.token_filename).save("token-1")
    session = Mock()
    session.validate.side_effect = ValidationFailed("expired", code=9)

    with patch('debug_token.load_config', return_value=config):
        assert debug_token(Mock(return_value=session)) == 1

    assert "Token rejected" in capsys.readouterr().out
