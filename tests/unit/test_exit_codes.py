"""Tests for exit_codes module."""

from bacroute.cli.exit_codes import (
    EXIT_SUCCESS,
    EXIT_ERROR,
    EXIT_USAGE,
    EXIT_SIGINT,
    EXIT_SIGTERM,
)

ALL_CODES = [EXIT_SUCCESS, EXIT_ERROR, EXIT_USAGE, EXIT_SIGINT, EXIT_SIGTERM]


class TestExitCodes:
    """Test exit code constants."""

    def test_success_and_error(self):
        assert EXIT_SUCCESS == 0
        assert EXIT_ERROR == 1
        assert EXIT_USAGE == 2

    def test_signal_codes(self):
        """Signal exits follow the 128 + signum convention."""
        assert EXIT_SIGINT == 128 + 2
        assert EXIT_SIGTERM == 128 + 15

    def test_codes_fit_in_byte(self):
        for code in ALL_CODES:
            assert isinstance(code, int)
            assert 0 <= code <= 255

    def test_exit_codes_are_unique(self):
        assert len(ALL_CODES) == len(set(ALL_CODES))
