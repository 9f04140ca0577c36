"""
Unit tests for the notebook stack prefixer
"""

import pytest
from types import SimpleNamespace
from unittest.mock import Mock, patch

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import notebook_prefixer
from evernote_errors import ConfigurationError, ValidationFailed
from notebook_prefixer import NotebookRenamer, prefixed_name


def notebook(name, stack=None):
    return SimpleNamespace(name=name, stack=stack)


class TestPrefixedName:
    """Test cases for the prefix rule."""

    @pytest.mark.parametrize("name,stack,expected", [
        ("Foo", "Work", "Work_Foo"),
        ("Work_Foo", "Work", None),
        ("Foo", None, None),
        ("Foo", "", None),
        ("Work_Foo", "", None),
        ("WorkFoo", "Work", "Work_WorkFoo"),
        ("Work", "Work", "Work_Work"),
    ])
    def test_prefixed_name(self, name, stack, expected):
        assert prefixed_name(name, stack) == expected

    def test_prefixing_twice_is_a_no_op(self):
        once = prefixed_name("Foo", "Work")
        assert prefixed_name(once, "Work") is None


class TestNotebookRenamer:
    """Test cases for NotebookRenamer."""

    @pytest.fixture
    def session(self):
        return Mock()

    def test_renames_stacked_notebook(self, session):
        nb = notebook("Foo", "Work")
        session.list_notebooks.return_value = [nb]

        renamed = NotebookRenamer(session).rename_remaining_notebooks()

        assert renamed == [("Foo", "Work_Foo")]
        assert nb.name == "Work_Foo"
        session.update_notebook.assert_called_once_with(nb)

    def test_skips_notebook_without_stack(self, session):
        nb = notebook("Inbox")
        session.list_notebooks.return_value = [nb]

        assert NotebookRenamer(session).rename_remaining_notebooks() == []
        assert nb.name == "Inbox"
        session.update_notebook.assert_not_called()

    def test_skips_already_prefixed(self, session):
        nb = notebook("Work_Foo", "Work")
        session.list_notebooks.return_value = [nb]

        assert NotebookRenamer(session).rename_remaining_notebooks() == []
        assert nb.name == "Work_Foo"
        session.update_notebook.assert_not_called()

    def test_listing_order_is_kept(self, session):
        session.list_notebooks.return_value = [
            notebook("B", "Home"),
            notebook("Inbox"),
            notebook("A", "Work"),
        ]

        renamed = NotebookRenamer(session).rename_remaining_notebooks()

        assert renamed == [("B", "Home_B"), ("A", "Work_A")]

    def test_second_pass_renames_nothing(self, session):
        notebooks = [notebook("Foo", "Work"), notebook("Bar", "Home"), notebook("Loose")]
        session.list_notebooks.return_value = notebooks
        renamer = NotebookRenamer(session)

        assert len(renamer.rename_remaining_notebooks()) == 2
        assert renamer.rename_remaining_notebooks() == []
        assert session.update_notebook.call_count == 2

    def test_update_failure_aborts_pass(self, session):
        notebooks = [notebook("A", "S"), notebook("B", "S"), notebook("C", "S")]
        session.list_notebooks.return_value = notebooks
        session.update_notebook.side_effect = [1, ValidationFailed("DATA_CONFLICT")]

        with pytest.raises(ValidationFailed):
            NotebookRenamer(session).rename_remaining_notebooks()

        assert session.update_notebook.call_count == 2
        assert notebooks[2].name == "C"


class TestMain:
    """Test cases for the CLI entry point."""

    @pytest.fixture(autouse=True)
    def no_log_file(self):
        with patch('notebook_prefixer.setup_logging'):
            yield

    def test_missing_credentials_exit(self):
        with patch('notebook_prefixer.load_config', side_effect=ConfigurationError("CONSUMER_KEY or CONSUMER_SECRET not set")):
            with pytest.raises(SystemExit) as exc_info:
                notebook_prefixer.main()
        assert exc_info.value.code == 1

    @patch('notebook_prefixer.NotebookRenamer')
    @patch('notebook_prefixer.SessionOpener')
    @patch('notebook_prefixer.load_config')
    def test_success(self, mock_load_config, mock_opener_class, mock_renamer_class):
        mock_load_config.return_value = Mock(token_filename="evernote_token.json")
        mock_renamer_class.return_value.rename_remaining_notebooks.return_value = [("Foo", "Work_Foo")]

        notebook_prefixer.main()

        session = mock_opener_class.return_value.open.return_value
        mock_renamer_class.assert_called_once_with(session)

    @patch('notebook_prefixer.SessionOpener')
    @patch('notebook_prefixer.load_config')
    def test_failure_exits_nonzero(self, mock_load_config, mock_opener_class):
        mock_load_config.return_value = Mock(token_filename="evernote_token.json")
        mock_opener_class.return_value.open.side_effect = ValidationFailed("AUTH_EXPIRED", code=9)

        with pytest.raises(SystemExit) as exc_info:
            notebook_prefixer.main()
        assert exc_info.value.code == 1
