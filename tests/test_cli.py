"""
Tests for command-line argument parsing.
"""

import pytest

from main import parse_args


class TestParseArgs:
    """Test cases for parse_args."""

    def test_interval(self):
        assert parse_args(["--interval", "15"]).interval == 15
        assert parse_args([]).interval is None

    @pytest.mark.parametrize("value", ["0", "-5", "ten"])
    def test_invalid_interval_is_rejected(self, value, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--interval", value])

        assert exc_info.value.code == 2
        assert "--interval" in capsys.readouterr().err

    def test_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["--once", "--list"])
