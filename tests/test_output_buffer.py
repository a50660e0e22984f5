"""OutputBuffer と FileSink のテスト"""

import pytest
from unittest.mock import Mock

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from output_buffer import OutputBuffer, FileSink, FLUSH_THRESHOLD
from exceptions import DumpWriteError


class TestOutputBuffer:
    """バッファリングとフラッシュのテスト"""

    def test_no_write_until_threshold_exceeded(self, list_sink):
        """保留行数が閾値以下なら書き込まない"""
        buffer = OutputBuffer(list_sink)
        for i in range(FLUSH_THRESHOLD):
            buffer.append(f"line{i};")

        assert list_sink.writes == []
        assert len(buffer.pending) == FLUSH_THRESHOLD

    def test_flush_when_threshold_exceeded(self, list_sink):
        """閾値を超えた時点で改行区切りで書き出して空にする"""
        buffer = OutputBuffer(list_sink)
        for i in range(FLUSH_THRESHOLD + 1):
            buffer.append(f"line{i};")

        assert len(list_sink.writes) == 1
        assert list_sink.writes[0] == '\n'.join(f"line{i};" for i in range(FLUSH_THRESHOLD + 1))
        assert buffer.pending == []

    def test_explicit_flush(self, list_sink):
        buffer = OutputBuffer(list_sink)
        buffer.append("a;")
        buffer.append("b;", flush=True)

        assert list_sink.writes == ["a;\nb;"]

    def test_finalize_writes_trailing_blank_line(self, list_sink):
        """終端処理で末尾に空行が付く"""
        buffer = OutputBuffer(list_sink)
        buffer.append("a;")
        buffer.append("b;")
        buffer.finalize()

        assert list_sink.text == "a;\nb;\n"

    def test_finalize_on_empty_buffer(self, list_sink):
        buffer = OutputBuffer(list_sink)
        buffer.finalize()

        assert list_sink.text == ""
        assert list_sink.writes == [""]

    def test_later_flushes_start_on_new_line(self, list_sink):
        """2回目以降の書き込みは前回の最終行と連結しない"""
        buffer = OutputBuffer(list_sink, threshold=2)
        for i in range(5):
            buffer.append(f"s{i};")
        buffer.finalize()

        assert list_sink.text == "s0;\ns1;\ns2;\ns3;\ns4;\n"

    def test_sink_error_propagates(self):
        sink = Mock()
        sink.append.side_effect = DumpWriteError("disk full", path="/tmp/x.sql")
        buffer = OutputBuffer(sink)
        buffer.append("a;")

        with pytest.raises(DumpWriteError):
            buffer.finalize()


class TestFileSink:
    """ファイル追記のテスト"""

    def test_append_never_truncates(self, tmp_path):
        path = tmp_path / "dump.sql"
        path.write_text("existing\n", encoding="utf-8")
        sink = FileSink(str(path))

        sink.append("a;")
        sink.append("\nb;")

        assert path.read_text(encoding="utf-8") == "existing\na;\nb;"

    def test_append_creates_file(self, tmp_path):
        path = tmp_path / "new.sql"
        FileSink(str(path)).append("x;")
        assert path.read_text(encoding="utf-8") == "x;"

    def test_write_failure_raises_dump_write_error(self, tmp_path):
        """書き込めない場所なら DumpWriteError"""
        sink = FileSink(str(tmp_path))

        with pytest.raises(DumpWriteError) as exc_info:
            sink.append("x;")
        assert exc_info.value.path == str(tmp_path)
