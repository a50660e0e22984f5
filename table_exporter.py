"""テーブル定義と行データのINSERT文出力

D1 のクエリは式の木の深さに上限があり、多数の列を ``quote()`` で連結した
SELECT は失敗する。そのため列を最大9列ずつのグループに分け、同じ
``LIMIT``/``OFFSET`` のサブクエリを1リクエストで送り、返ってきた断片を
行ごとにクライアント側で連結して VALUES の中身を組み立てる。
"""
import logging
from typing import Any, Dict, List

try:
    from .models import ExportState, TableDescriptor, TableKind, quote_identifier, quote_literal
    from .exceptions import ChunkMismatchError, ConfigurationError, RowCountUnavailableError
except ImportError:
    from models import ExportState, TableDescriptor, TableKind, quote_identifier, quote_literal
    from exceptions import ChunkMismatchError, ConfigurationError, RowCountUnavailableError


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000
# D1は最大深さ20としているが、実際の上限は9列前後
COLUMN_CHUNK_SIZE = 9

WRITABLE_SCHEMA_ON = 'PRAGMA writable_schema=ON;'
WRITABLE_SCHEMA_OFF = 'PRAGMA writable_schema=OFF;'
SEQUENCE_RESET = 'DELETE FROM sqlite_sequence;'
STAT_REBUILD = 'ANALYZE sqlite_master;'


def split_column_groups(columns: List[str], size: int = COLUMN_CHUNK_SIZE) -> List[List[str]]:
    """列リストを size 列以下のグループに分割"""
    return [columns[i:i + size] for i in range(0, len(columns), size)]


def build_chunk_query(table: str, columns: List[str], limit: int, offset: int) -> str:
    """1グループ分の列を quote() して ', ' で連結した partialCommand を返すSELECT"""
    parts = ", ".join(f"'||quote({quote_identifier(column)})||'" for column in columns)
    return (
        f"SELECT '{parts}' AS partialCommand FROM {quote_identifier(table)} "
        f"LIMIT {limit} OFFSET {offset}"
    )


def validate_chunk_groups(groups: List[List[str]], table: str = "", offset: int = 0) -> int:
    """全グループの行数が先頭グループと一致するか検証し、行数を返す"""
    if not groups:
        return 0
    expected = len(groups[0])
    for group in groups[1:]:
        if len(group) != expected:
            raise ChunkMismatchError(
                "列分割クエリの結果行数が一致しません",
                table=table, offset=offset, expected=expected, actual=len(group)
            )
    return expected


def reassemble_rows(groups: List[List[str]]) -> List[str]:
    """グループごとの断片を行単位で連結し、VALUES の中身を返す

    groups[g][r] はグループ g の r 行目の断片。行数は検証済みであること。
    """
    if not groups:
        return []
    rows = []
    for row_index in range(len(groups[0])):
        fragments = [group[row_index].replace('\n', '\\n') for group in groups]
        rows.append(', '.join(fragments))
    return rows


def build_insert_statement(table: str, columns: List[str], values: str) -> str:
    column_list = ', '.join(quote_identifier(column) for column in columns)
    return f"INSERT INTO {quote_identifier(table)} ({column_list}) VALUES ({values});"


def build_virtual_table_statement(descriptor: TableDescriptor) -> str:
    """仮想テーブル定義を sqlite_master に直接書き込むINSERT文"""
    name = quote_literal(descriptor.name)
    sql = quote_literal(descriptor.creation_sql or '')
    return (
        "INSERT INTO sqlite_master (type, name, tbl_name, rootpage, sql) "
        f"VALUES ('table', '{name}', '{name}', 0, '{sql}');"
    )


class TableExporter:
    """テーブルごとに作成文と行データを出力バッファへ書き出す"""

    def __init__(self, client, buffer, limit: int = DEFAULT_PAGE_SIZE):
        self.client = client
        self.buffer = buffer
        # 0 以下だと range() が空になり行が黙って失われる
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ConfigurationError(f"limit は正の整数である必要があります: {limit}")
        self.limit = limit

    def export_table(self, table: TableDescriptor, state: ExportState) -> None:
        """種別に応じて1テーブルを処理"""
        if table.excluded:
            logger.debug(f"Skipping system table: {table.name}")
            return

        logger.info(f"Processing table: {table.name}")

        if table.kind == TableKind.SQLITE_SEQUENCE:
            self.buffer.append(SEQUENCE_RESET)
        elif table.kind == TableKind.SQLITE_STAT:
            self.buffer.append(STAT_REBUILD)
        elif table.kind == TableKind.VIRTUAL:
            self._inject_virtual_table(table, state)
        elif table.exports_rows:
            self._export_ordinary_table(table, state)

    def finish(self, state: ExportState) -> None:
        """writable_schema を有効にしていた場合のみ無効化文を出力"""
        if state.writable_schema:
            self.buffer.append(WRITABLE_SCHEMA_OFF)

    def _inject_virtual_table(self, table: TableDescriptor, state: ExportState) -> None:
        if not state.writable_schema:
            self.buffer.append(WRITABLE_SCHEMA_ON)
            state.writable_schema = True
        self.buffer.append(build_virtual_table_statement(table))
        state.stats.virtual_tables += 1
        state.stats.tables_exported += 1

    def _export_ordinary_table(self, table: TableDescriptor, state: ExportState) -> None:
        self._emit_definition(table)
        state.stats.tables_exported += 1

        columns = self.probe_columns(table.name)
        if not columns:
            logger.info(f"Table is empty: {table.name}")
            return

        row_count = self.count_rows(table.name)
        logger.info(f"Table row count: {row_count} for table: {table.name}")

        # 行数ちょうどのオフセットも含める（最後のページは空になりうる）
        for offset in range(0, row_count + 1, self.limit):
            groups = self.fetch_chunk_groups(table.name, columns, offset)
            validate_chunk_groups(groups, table=table.name, offset=offset)
            for values in reassemble_rows(groups):
                self.buffer.append(build_insert_statement(table.name, columns, values))
                state.stats.rows_exported += 1

    def _emit_definition(self, table: TableDescriptor) -> None:
        self.buffer.append(table.creation_statement())

    def probe_columns(self, table: str) -> List[str]:
        """1行だけ取得して列名を得る。空テーブルなら空リスト"""
        # PRAGMA table_info は D1 で権限エラーになるため使わない
        rows = self._first_result_rows(f"SELECT * FROM {quote_identifier(table)} LIMIT 1")
        if not rows:
            return []
        return list(rows[0].keys())

    def count_rows(self, table: str) -> int:
        rows = self._first_result_rows(f"SELECT COUNT(*) AS count FROM {quote_identifier(table)}")
        if not rows or rows[0].get('count') is None:
            raise RowCountUnavailableError("テーブルの行数を取得できませんでした", table=table)
        return int(rows[0]['count'])

    def fetch_chunk_groups(self, table: str, columns: List[str], offset: int) -> List[List[str]]:
        """1ページ分の列グループのサブクエリをまとめて実行し、グループごとの断片を返す"""
        queries = [
            build_chunk_query(table, group, self.limit, offset)
            for group in split_column_groups(columns)
        ]
        results = self.client.execute_batch(';\n'.join(queries))
        if len(results) != len(queries):
            raise ChunkMismatchError(
                "列分割クエリの結果セット数が一致しません",
                table=table, offset=offset, expected=len(queries), actual=len(results)
            )
        return [
            [row['partialCommand'] for row in (result.get('results') or [])]
            for result in results
        ]

    def _first_result_rows(self, sql: str) -> List[Dict[str, Any]]:
        results = self.client.execute_batch(sql)
        if not results:
            return []
        return results[0].get('results') or []
