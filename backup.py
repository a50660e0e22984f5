"""D1データベースバックアップ メインCLI"""
import argparse
import logging
import sys
import time
from typing import Optional

try:
    from .config_loader import ConfigLoader, DEFAULT_LIMIT
    from .d1_client import D1Client
    from .output_buffer import FileSink, OutputBuffer
    from .schema_enumerator import SchemaEnumerator
    from .table_exporter import TableExporter
    from .auxiliary_exporter import AuxiliaryExporter
    from .models import ExportState, ExportStats
    from .metrics import push_failure_metric, push_backup_metric
    from .exceptions import (
        D1BackupError,
        ConfigurationError,
        PrometheusError
    )
except ImportError:
    from config_loader import ConfigLoader, DEFAULT_LIMIT
    from d1_client import D1Client
    from output_buffer import FileSink, OutputBuffer
    from schema_enumerator import SchemaEnumerator
    from table_exporter import TableExporter
    from auxiliary_exporter import AuxiliaryExporter
    from models import ExportState, ExportStats
    from metrics import push_failure_metric, push_backup_metric
    from exceptions import (
        D1BackupError,
        ConfigurationError,
        PrometheusError
    )


logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def export_database(client, sink, limit: int = DEFAULT_LIMIT) -> ExportStats:
    """カタログ列挙 → テーブル出力 → 補助オブジェクト出力 → 終端 の順で1回だけ実行"""
    state = ExportState()
    buffer = OutputBuffer(sink)
    enumerator = SchemaEnumerator(client)
    table_exporter = TableExporter(client, buffer, limit=limit)

    for table in enumerator.list_tables():
        table_exporter.export_table(table, state)

    AuxiliaryExporter(enumerator, buffer).export(state)
    table_exporter.finish(state)
    buffer.finalize()
    return state.stats


def create_backup(account_id: str, database_id: str, api_key: str, file_path: str,
                  limit: Optional[int] = None) -> ExportStats:
    """D1データベースを file_path にSQLダンプとして追記する"""
    client = D1Client(account_id, database_id, api_key)
    return export_database(client, FileSink(file_path), DEFAULT_LIMIT if limit is None else limit)


class D1Backup:
    """設定を読み込み、バックアップを実行するメインクラス"""

    def __init__(self, config_path: str = "config.json"):
        self.config_loader = ConfigLoader(config_path)

    def _create_client(self) -> D1Client:
        return D1Client(
            self.config_loader.account_id,
            self.config_loader.database_id,
            self.config_loader.api_key
        )

    def test_connection(self) -> bool:
        """D1接続テスト"""
        return self._create_client().test_connection()

    def run(self, file_path: Optional[str] = None, limit: Optional[int] = None) -> ExportStats:
        """バックアップを実行"""
        start_time = time.time()
        config = self.config_loader.load_config()
        file_path = file_path or config['filePath']
        limit = config['limit'] if limit is None else limit

        logger.info(f"Starting D1 backup to {file_path} (page size {limit})")

        try:
            stats = export_database(self._create_client(), FileSink(file_path), limit)
        except D1BackupError as e:
            logger.error(f"Backup failed, output file is incomplete: {e}")
            try:
                push_failure_metric(type(e).__name__, str(e))
            except PrometheusError as prom_err:
                logger.error(f"Failed to push failure metric: {prom_err}")
            raise

        duration = time.time() - start_time
        try:
            push_backup_metric(stats.tables_exported, stats.rows_exported, duration)
        except PrometheusError as e:
            logger.error(f"Failed to push backup metrics: {e}")

        logger.info(
            f"Backup completed. Exported {stats.tables_exported} tables, "
            f"{stats.rows_exported} rows, {stats.auxiliary_objects} indexes/triggers/views "
            f"in {duration:.2f}s"
        )
        return stats


def main():
    """メイン関数"""
    parser = argparse.ArgumentParser(description='Cloudflare D1 データベースのSQLダンプ作成')
    parser.add_argument('--config', default='config.json', help='設定ファイルパス')
    parser.add_argument('--output', help='ダンプ出力先（設定の filePath を上書き）')
    parser.add_argument('--limit', type=int, help='1ページあたりの行数（設定の limit を上書き）')
    parser.add_argument('--cron', action='store_true', help='cron実行モード')
    parser.add_argument('--test', action='store_true', help='接続テストモード')

    args = parser.parse_args()

    if args.limit is not None and args.limit <= 0:
        parser.error('--limit は正の整数で指定してください')

    try:
        backup = D1Backup(args.config)

        if args.test:
            print("=== D1 接続テスト ===")
            if backup.test_connection():
                print("✅ D1接続テスト成功")
                sys.exit(0)
            print("❌ D1接続テスト失敗")
            sys.exit(1)

        if args.cron:
            # cronモード: ログレベルを調整
            logging.getLogger().setLevel(logging.WARNING)

        backup.run(file_path=args.output, limit=args.limit)

    except KeyboardInterrupt:
        logger.info("Backup interrupted by user")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except D1BackupError as e:
        logger.error(f"Backup error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
