"""D1バックアップツール用カスタム例外"""

import logging
import os
from typing import List, Optional

logger = logging.getLogger(__name__)


def _increment_exception_counter(exception_type: str, details: str = ""):
    """例外発生時のPrometheusカウンターを増加（オプション機能）"""
    try:
        # 循環インポートを回避するため、関数内でインポート
        from metrics import get_pushgateway_client

        client = get_pushgateway_client()
        labels = {
            "exception_type": exception_type,
            "instance": os.getenv('HOSTNAME', 'localhost')
        }

        if details:
            # 詳細情報のハッシュを追加（プライバシー保護）
            labels["detail_hash"] = str(hash(details))[:8]

        client.increment_counter(
            name="d1_backup_exceptions_total",
            labels=labels,
            help_text="Total number of exceptions raised by type"
        )
        logger.debug(f"Exception counter incremented: {exception_type}")

    except Exception as e:
        # メトリクス送信の失敗は元の例外処理を阻害しない
        logger.debug(f"Failed to increment exception counter: {e}")


class D1BackupError(Exception):
    """D1バックアップツールの基底例外クラス"""

    metric_label = "base_error"

    def __init__(self, message: str = "", details: str = ""):
        super().__init__(message)
        if self.metric_label:
            _increment_exception_counter(self.metric_label, details or message)


class ConfigurationError(D1BackupError):
    """設定ファイルの読み込みエラー"""

    metric_label = "config_error"

    def __init__(self, message: str = "", config_path: str = ""):
        super().__init__(message, f"{message} {config_path}".strip())
        self.config_path = config_path


class QueryError(D1BackupError):
    """D1 APIがエラーリストを返した"""

    metric_label = "query_error"

    def __init__(self, message: str, messages: Optional[List[str]] = None):
        super().__init__(message)
        self.messages = list(messages or [])


class NetworkError(D1BackupError):
    """D1 APIへのネットワーク接続エラー"""

    metric_label = "network_error"

    def __init__(self, message: str, url: str = None, timeout: bool = False):
        details_parts = [message]
        if url:
            details_parts.append(f"url:{url}")
        if timeout:
            details_parts.append("timeout:true")
        super().__init__(message, " ".join(details_parts))
        self.url = url
        self.timeout = timeout


class RowCountUnavailableError(D1BackupError):
    """テーブルの行数が取得できなかった"""

    metric_label = "row_count_unavailable"

    def __init__(self, message: str, table: str = ""):
        super().__init__(message, f"{message} table:{table}")
        self.table = table


class ChunkMismatchError(D1BackupError):
    """列分割クエリ間で行数が一致しなかった"""

    metric_label = "chunk_mismatch"

    def __init__(self, message: str, table: str = "", offset: int = 0,
                 expected: int = 0, actual: int = 0):
        super().__init__(message, f"{message} table:{table} offset:{offset}")
        self.table = table
        self.offset = offset
        self.expected = expected
        self.actual = actual

    def __str__(self):
        base_msg = super().__str__()
        return f"{base_msg} (table={self.table}, offset={self.offset}, expected={self.expected}, actual={self.actual})"


class DumpWriteError(D1BackupError):
    """ダンプファイルへの書き込みエラー"""

    metric_label = "write_error"

    def __init__(self, message: str, path: str = ""):
        super().__init__(message, f"{message} {path}".strip())
        self.path = path


class PrometheusError(D1BackupError):
    """Prometheus メトリクス送信エラー"""

    # 送信失敗の送信で再帰しないようカウンター対象外
    metric_label = None

    def __init__(self, message: str, metric_name: str = None):
        details = f"{message} metric:{metric_name}" if metric_name else message
        super().__init__(message, details)
        self.metric_name = metric_name
