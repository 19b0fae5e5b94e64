"""
Test script for the command line.
Bad arguments must stop the program before any networking starts.

Usage:
    python test_main.py     # Run all tests
    pytest test_main.py
"""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import main
from network import UsageError


def no_networking(*args, **kwargs):
    raise AssertionError("networking started for bad arguments")


@pytest.fixture(autouse=True)
def block_rendezvous(monkeypatch):
    monkeypatch.setattr(main.GameSession, "rendezvous", no_networking)


def test_parse_port():
    assert main.parse_port("5000") == 5000
    assert main.parse_port("65535") == 65535

    for bad in ("4999", "0", "65536", "abc", "", None):
        with pytest.raises(UsageError):
            main.parse_port(bad)


def test_parse_endpoint():
    assert main.parse_endpoint("127.0.0.1", "5001") == ("127.0.0.1", 5001)

    with pytest.raises(UsageError):
        main.parse_endpoint(None, None)
    with pytest.raises(UsageError):
        main.parse_endpoint("127.0.0.1", None)
    with pytest.raises(UsageError):
        main.parse_endpoint("no such host .invalid", "5001")


@pytest.mark.parametrize("argv", [
    ["127.0.0.1", "80", "--no-ui"],
    ["127.0.0.1", "port", "--auto"],
    ["--no-ui"],
])
def test_bad_arguments_exit_non_zero(argv, capsys):
    assert main.main(argv) == 1
    assert "ERROR" in capsys.readouterr().err


def test_argparse_errors_exit_non_zero():
    with pytest.raises(SystemExit) as exc:
        main.main(["127.0.0.1", "5001", "extra-argument"])
    assert exc.value.code != 0


def test_rendezvous_failure_exits_non_zero(monkeypatch, capsys):
    def failing_rendezvous(*args, **kwargs):
        raise main.RendezvousError("nobody came")

    monkeypatch.setattr(main.GameSession, "rendezvous", failing_rendezvous)

    assert main.main(["127.0.0.1", "5001", "--auto"]) == 1
    assert "rendezvous failed" in capsys.readouterr().out


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-q"]))
