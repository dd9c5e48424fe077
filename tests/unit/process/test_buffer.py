"""Unit tests for the capture buffer."""

import pytest

from dcmproc.process import CapturedBuffer


class TestCapturedBuffer:
    def test_accumulates_under_ceiling(self) -> None:
        buffer = CapturedBuffer(max_bytes=10)
        buffer.append(b"abc")
        buffer.append(b"def")
        assert buffer.getvalue() == b"abcdef"
        assert len(buffer) == 6
        assert buffer.truncated is False

    def test_keeps_fitting_prefix_of_chunk(self) -> None:
        buffer = CapturedBuffer(max_bytes=4)
        buffer.append(b"abcdef")
        assert buffer.getvalue() == b"abcd"
        assert buffer.dropped == 2
        assert buffer.truncated is True

    def test_drops_everything_past_ceiling(self) -> None:
        buffer = CapturedBuffer(max_bytes=3)
        buffer.append(b"abc")
        buffer.append(b"defg")
        assert buffer.getvalue() == b"abc"
        assert buffer.dropped == 4

    def test_exact_fit_is_not_truncated(self) -> None:
        buffer = CapturedBuffer(max_bytes=3)
        buffer.append(b"abc")
        assert buffer.truncated is False

    def test_zero_ceiling(self) -> None:
        buffer = CapturedBuffer(max_bytes=0)
        buffer.append(b"x")
        assert buffer.getvalue() == b""
        assert buffer.dropped == 1

    def test_negative_ceiling_rejected(self) -> None:
        with pytest.raises(ValueError, match="must not be negative"):
            _ = CapturedBuffer(max_bytes=-1)

    def test_text_replaces_invalid_utf8(self) -> None:
        buffer = CapturedBuffer()
        buffer.append(b"ok \xff")
        assert buffer.text() == "ok �"
