"""ダンプ出力のバッファリングとファイル追記"""
import logging
from typing import List

try:
    from .exceptions import DumpWriteError
except ImportError:
    from exceptions import DumpWriteError


logger = logging.getLogger(__name__)

FLUSH_THRESHOLD = 1000


class FileSink:
    """ダンプファイルへの追記専用シンク（切り詰め・シークは行わない）"""

    def __init__(self, file_path: str):
        self.file_path = file_path

    def append(self, text: str) -> None:
        try:
            with open(self.file_path, 'a', encoding='utf-8') as f:
                f.write(text)
        except OSError as e:
            raise DumpWriteError(f"ダンプファイルへの書き込みに失敗: {e}", path=self.file_path)


class OutputBuffer:
    """SQL文を行単位で溜め、閾値を超えたらシンクへ書き出す"""

    def __init__(self, sink, threshold: int = FLUSH_THRESHOLD):
        self.sink = sink
        self.threshold = threshold
        self.pending: List[str] = []
        self._written = False

    def append(self, line: str, flush: bool = False) -> None:
        """1行追加し、必要ならフラッシュ"""
        self.pending.append(line)
        if len(self.pending) > self.threshold or flush:
            self._flush()

    def _flush(self) -> None:
        text = '\n'.join(self.pending)
        # 前回の書き込みの最終行と連結しないよう改行を挟む
        if self._written:
            text = '\n' + text
        self.sink.append(text)
        logger.debug(f"Flushed {len(self.pending)} lines")
        self.pending = []
        self._written = True

    def finalize(self) -> None:
        """残りを書き出す（末尾の空行を含む）。実行の最後に1回だけ呼ぶ"""
        self.append('', flush=True)
