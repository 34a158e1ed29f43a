"""Tests for the interactive REPL."""

from unittest.mock import patch

import pytest

from cli import commands, repl


@pytest.fixture(autouse=True)
def reset_client():
    commands.set_server_url(None)
    yield
    commands.set_server_url(None)


def _prompt_text():
    [(style, text)] = repl.prompt_message()
    assert style == 'class:prompt'
    return text


def test_prompt_shows_auto_discovery():
    assert _prompt_text() == 'share [auto]> '


def test_prompt_follows_server_switch():
    commands.set_server_url('http://192.168.1.20:3000')

    assert _prompt_text() == 'share [192.168.1.20:3000]> '


@patch('cli.repl.commands.dispatch_command', return_value='No files shared yet.')
@patch('cli.repl.commands.connect', return_value='Using discovered server: http://192.168.1.20:3000')
@patch('cli.repl.PromptSession')
def test_loop_reports_server_and_dispatches(mock_session_cls, mock_connect, mock_dispatch, capsys):
    mock_session_cls.return_value.prompt.side_effect = ['', 'list', 'bogus', 'exit']

    repl.repl_loop()

    out = capsys.readouterr().out
    assert 'Using discovered server: http://192.168.1.20:3000' in out
    assert 'No files shared yet.' in out
    assert 'Error: Unknown command' in out
    assert out.rstrip().endswith('Goodbye!')
    mock_dispatch.assert_called_once()


@patch('cli.repl.commands.connect', return_value='Error: No file share server found on the local network. Use --server URL.')
@patch('cli.repl.PromptSession')
def test_loop_ends_on_eof(mock_session_cls, mock_connect, capsys):
    mock_session_cls.return_value.prompt.side_effect = EOFError()

    repl.repl_loop()

    out = capsys.readouterr().out
    assert 'No file share server found' in out
    assert 'Goodbye!' in out
