"""Unit tests for Connection.

Covers connect/login, selection tracking, warning capture during SELECT and
the mailbox LIST/CREATE/DELETE operations, with IMAPClient mocked out.
"""

from unittest.mock import Mock, patch

import pytest
from imapclient.exceptions import IMAPClientError

from imap_mailbox import (
    CapturedProtocolWarning,
    Connection,
    ConnectionConfig,
    ConnectionOperationError,
    Mailbox,
    MailboxAttribute,
    MailboxDeleteError,
    MailboxNotFoundError,
)


@pytest.fixture
def mock_imap_client():
    """Create mocked IMAPClient instance."""
    client = Mock()
    client.login.return_value = None
    client.select_folder.return_value = {
        b"EXISTS": 100,
        b"RECENT": 0,
        b"UIDNEXT": 150,
    }
    client.noop.return_value = (b"NOOP completed", [])
    return client


@pytest.fixture
def connection(mock_imap_client):
    """Create Connection with mocked IMAPClient."""
    with patch("imap_mailbox.connection.IMAPClient", return_value=mock_imap_client):
        conn = Connection(
            host="imap.test.com",
            port=993,
            username="test@test.com",
            password="password",  # pragma: allowlist secret
            ssl=True,
        )
    return conn


def test_init_connects_and_authenticates(mock_imap_client):
    """Test that __init__ connects and logs in immediately."""
    with patch("imap_mailbox.connection.IMAPClient", return_value=mock_imap_client) as factory:
        Connection(
            host="imap.test.com",
            port=993,
            username="test@test.com",
            password="password",  # pragma: allowlist secret
        )

    factory.assert_called_once_with(host="imap.test.com", port=993, ssl=True, timeout=10)
    mock_imap_client.login.assert_called_once_with("test@test.com", "password")  # pragma: allowlist secret

    # Names must stay in wire format
    assert mock_imap_client.folder_encode is False


def test_init_wraps_login_failure(mock_imap_client):
    """Test that a refused login surfaces as ConnectionOperationError."""
    mock_imap_client.login.side_effect = IMAPClientError("[AUTHENTICATIONFAILED] Invalid credentials")

    with patch("imap_mailbox.connection.IMAPClient", return_value=mock_imap_client):
        with pytest.raises(ConnectionOperationError) as exc_info:
            Connection(host="imap.test.com", username="test@test.com", password="wrong")

    assert isinstance(exc_info.value.__cause__, IMAPClientError)


def test_from_config(mock_imap_client):
    """Test that from_config passes every setting through."""
    config = ConnectionConfig(host="imap.test.com", port=143, username="u", password="p", ssl=False, timeout=30)

    with patch("imap_mailbox.connection.IMAPClient", return_value=mock_imap_client) as factory:
        Connection.from_config(config)

    factory.assert_called_once_with(host="imap.test.com", port=143, ssl=False, timeout=30)
    mock_imap_client.login.assert_called_once_with("u", "p")


def test_current_selection_before_any_select(connection, mock_imap_client):
    """Test that nothing is reported selected on a fresh connection."""
    check = connection.current_selection()

    assert check.mailbox is None
    assert check.ok is True
    # Nothing to verify, so no round-trip
    mock_imap_client.noop.assert_not_called()


def test_reselect_records_selection(connection, mock_imap_client):
    """Test that a clean SELECT becomes the current selection."""
    result = connection.reselect("INBOX")

    assert result.ok is True
    assert result.warning is None
    mock_imap_client.select_folder.assert_called_once_with("INBOX")

    check = connection.current_selection()
    assert check.mailbox == "INBOX"
    assert check.ok is True
    mock_imap_client.noop.assert_called_once()


def test_reselect_failure_reports_not_ok(connection, mock_imap_client):
    """Test that a refused SELECT returns ok=False and forgets the old selection."""
    connection.reselect("INBOX")
    mock_imap_client.select_folder.side_effect = IMAPClientError("select failed: [NONEXISTENT] no such mailbox")

    result = connection.reselect("Missing")

    assert result.ok is False
    assert connection.current_selection().mailbox is None


def test_reselect_captures_last_warning(connection, mock_imap_client):
    """Test that untagged NO notices during SELECT are captured, last one wins."""
    mock_imap_client.select_folder.return_value = {
        b"EXISTS": 0,
        b"NO": [b"first notice", b"[NONEXISTENT] Unknown Mailbox: [Gmail] (Failure)"],
    }

    result = connection.reselect("[Gmail]")

    assert result.ok is True
    assert isinstance(result.warning, CapturedProtocolWarning)
    assert result.warning.mailbox == "[Gmail]"
    assert result.warning.notice == "[NONEXISTENT] Unknown Mailbox: [Gmail] (Failure)"

    # Untrustworthy context is not remembered
    assert connection.current_selection().mailbox is None


def test_current_selection_noop_failure(connection, mock_imap_client):
    """Test that a dead session reports ok=False instead of raising."""
    connection.reselect("INBOX")
    mock_imap_client.noop.side_effect = IMAPClientError("socket error")

    check = connection.current_selection()

    assert check.ok is False
    assert check.mailbox is None


def test_raw_handle_returns_client(connection, mock_imap_client):
    assert connection.raw_handle() is mock_imap_client


def test_get_mailboxes_calls_list(connection, mock_imap_client):
    """Test that get_mailboxes calls LIST and builds Mailbox objects."""
    mock_imap_client.list_folders.return_value = [
        ((b"\\HasNoChildren",), b"/", b"INBOX"),
        ((b"\\Noselect", b"\\HasChildren"), b"/", b"[Gmail]"),
        ((b"\\HasNoChildren", b"\\Sent"), b"/", b"[Gmail]/Sent Mail"),
    ]

    mailboxes = connection.get_mailboxes()

    mock_imap_client.list_folders.assert_called_once_with(pattern="*")
    assert [m.path for m in mailboxes] == ["INBOX", "[Gmail]", "[Gmail]/Sent Mail"]
    assert all(isinstance(m, Mailbox) for m in mailboxes)
    assert mailboxes[1].info.attributes == MailboxAttribute.NOSELECT
    assert mailboxes[2].name == "Sent Mail"


def test_get_mailbox_matches_exact_name(connection, mock_imap_client):
    """Test that get_mailbox ignores LIST rows with a different name."""
    mock_imap_client.list_folders.return_value = [
        ((b"\\HasNoChildren",), b".", b"INBOX.Drafts"),
        ((b"\\HasChildren",), b".", b"INBOX"),
    ]

    mailbox = connection.get_mailbox("INBOX")

    mock_imap_client.list_folders.assert_called_once_with(pattern="INBOX")
    assert mailbox.path == "INBOX"


def test_get_mailbox_not_found(connection, mock_imap_client):
    mock_imap_client.list_folders.return_value = []

    with pytest.raises(MailboxNotFoundError):
        connection.get_mailbox("Nope")

    assert connection.has_mailbox("Nope") is False


def test_list_failure_wrapped(connection, mock_imap_client):
    mock_imap_client.list_folders.side_effect = IMAPClientError("LIST failed")

    with pytest.raises(ConnectionOperationError):
        connection.get_mailboxes()


def test_create_mailbox_calls_create(connection, mock_imap_client):
    """Test that create_mailbox calls CREATE and returns the listed mailbox."""
    mock_imap_client.list_folders.return_value = [
        ((b"\\HasNoChildren",), b"/", b"Archive"),
    ]

    mailbox = connection.create_mailbox("Archive")

    mock_imap_client.create_folder.assert_called_once_with("Archive")
    assert mailbox.path == "Archive"


def test_delete_mailbox_forgets_selection(connection, mock_imap_client):
    """Test that deleting the selected mailbox clears the selection."""
    mock_imap_client.list_folders.return_value = [((b"\\HasNoChildren",), b"/", b"Old")]
    mailbox = connection.get_mailbox("Old")
    connection.reselect("Old")

    connection.delete_mailbox(mailbox)

    mock_imap_client.delete_folder.assert_called_once_with("Old")
    assert connection.current_selection().mailbox is None


def test_delete_mailbox_failure_raises(connection, mock_imap_client):
    mock_imap_client.list_folders.return_value = [((b"\\HasNoChildren",), b"/", b"Old")]
    mailbox = connection.get_mailbox("Old")
    mock_imap_client.delete_folder.side_effect = IMAPClientError("DELETE failed")

    with pytest.raises(MailboxDeleteError) as exc_info:
        connection.delete_mailbox(mailbox)

    assert exc_info.value.mailbox == "Old"


def test_context_manager_logs_out(connection, mock_imap_client):
    with connection as conn:
        assert conn is connection

    mock_imap_client.logout.assert_called_once()


def test_close_tolerates_logout_error(connection, mock_imap_client):
    mock_imap_client.logout.side_effect = OSError("connection reset")

    connection.close()

    mock_imap_client.logout.assert_called_once()
