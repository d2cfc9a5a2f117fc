"""
Tests for the command line client

Run with: python -m pytest tests/test_cli.py -v
"""

import socket

import pytest
from cik import cli
from cik.client import CiKClient
from cik.network.transport import Transport
from tests.conftest import FakeSocket, failure_reply, find_free_port, success_reply


def run(argv, incoming=b""):
    args = cli.parse_args(argv)
    sock = FakeSocket(incoming=incoming)
    return cli.run(args, CiKClient(transport=Transport(sock))), sock


class TestParseArgs:
    """Test argument parsing."""

    def test_set_with_tags(self):
        args = cli.parse_args(["set", "k", "v", "--tag", "a", "--tag", "b", "--ttl", "30"])
        assert args.command == "set"
        assert args.tag == ["a", "b"]
        assert args.ttl == 30

    def test_global_options(self):
        args = cli.parse_args(["--host", "h", "--port", "1234", "get", "k"])
        assert args.host == "h"
        assert args.port == 1234

    def test_clear_default_mode(self):
        assert cli.parse_args(["clear"]).mode == "all"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.parse_args([])


class TestRun:
    """Test command execution."""

    def test_get_hit(self, capsys):
        status, _ = run(["get", "k"], success_reply(b"hello"))
        assert status == cli.EXIT_OK
        assert capsys.readouterr().out == "hello\n"

    def test_get_miss(self):
        status, _ = run(["get", "k"], failure_reply(0x41))
        assert status == cli.EXIT_MISS

    def test_set(self):
        status, sock = run(["set", "k", "v", "--tag", "t"], success_reply())
        assert status == cli.EXIT_OK
        assert sock.sent[5] == 1

    def test_list(self, capsys):
        status, _ = run(["list", "keys"], success_reply(b"\x01a\x01b"))
        assert status == cli.EXIT_OK
        assert capsys.readouterr().out == "a\nb\n"

    def test_info(self, capsys):
        payload = bytes(8) + (5).to_bytes(8, "big") + b"\x01t"
        status, _ = run(["info", "k"], success_reply(payload))
        assert status == cli.EXIT_OK
        out = capsys.readouterr().out
        assert "expires: never" in out
        assert "mtime:   5" in out


class TestMain:
    """Test the entry point's error handling."""

    def test_connection_refused(self):
        port = find_free_port()
        assert cli.main(["--port", str(port), "--timeout", "1", "get", "k"]) == cli.EXIT_ERROR

    @pytest.mark.parametrize("command", ["clear", "list"])
    def test_bogus_mode_does_not_connect(self, monkeypatch, command):
        calls = []

        def create_connection(*args, **kwargs):
            calls.append(args)
            raise ConnectionRefusedError

        monkeypatch.setattr(socket, "create_connection", create_connection)
        port = find_free_port()
        assert cli.main(["--port", str(port), command, "bogus-mode"]) == cli.EXIT_ERROR
        assert calls == []
