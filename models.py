"""D1バックアップのデータモデル"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


INTERNAL_PREFIX = '_cf_'
SYSTEM_PREFIX = 'sqlite_'
SEQUENCE_TABLE = 'sqlite_sequence'
STAT_TABLE = 'sqlite_stat1'
VIRTUAL_TABLE_KEYWORD = 'CREATE VIRTUAL TABLE'
TABLE_KEYWORD = 'CREATE TABLE '


class TableKind(Enum):
    """カタログ上のテーブル種別"""
    ORDINARY = 'ordinary'
    VIRTUAL = 'virtual'
    SQLITE_SEQUENCE = 'sqlite_sequence'
    SQLITE_STAT = 'sqlite_stat'
    SYSTEM_INTERNAL = 'system_internal'
    SYSTEM_OTHER = 'system_other'


def classify_table(name: str, creation_sql: Optional[str]) -> TableKind:
    """テーブル名と作成SQLから種別を判定（先にマッチした規則が優先）"""
    if name.startswith(INTERNAL_PREFIX):
        return TableKind.SYSTEM_INTERNAL
    if name == SEQUENCE_TABLE:
        return TableKind.SQLITE_SEQUENCE
    if name == STAT_TABLE:
        return TableKind.SQLITE_STAT
    if name.startswith(SYSTEM_PREFIX):
        return TableKind.SYSTEM_OTHER
    if isinstance(creation_sql, str) and creation_sql.startswith(VIRTUAL_TABLE_KEYWORD):
        return TableKind.VIRTUAL
    return TableKind.ORDINARY


@dataclass(frozen=True)
class TableDescriptor:
    """sqlite_master の1行に対応するテーブル情報"""
    name: str
    kind: TableKind
    creation_sql: Optional[str]

    @classmethod
    def from_catalog_row(cls, row: Dict[str, Any]) -> 'TableDescriptor':
        """カタログ行から作成"""
        name = row['name']
        creation_sql = row.get('sql')
        return cls(name=name, kind=classify_table(name, creation_sql), creation_sql=creation_sql)

    @property
    def excluded(self) -> bool:
        """ダンプ対象外のテーブルか"""
        return self.kind in (TableKind.SYSTEM_INTERNAL, TableKind.SYSTEM_OTHER)

    @property
    def exports_rows(self) -> bool:
        """行データをINSERT文として出力するか"""
        return self.kind == TableKind.ORDINARY

    def creation_statement(self) -> str:
        """ダンプに書き出す作成文（通常テーブルは IF NOT EXISTS 付きに書き換え）"""
        sql = self.creation_sql or ''
        if sql.upper().startswith(TABLE_KEYWORD):
            return f"CREATE TABLE IF NOT EXISTS {sql[len(TABLE_KEYWORD):]};"
        return f"{sql};"


def quote_identifier(name: str) -> str:
    """識別子をダブルクォートで囲む（内部の " は二重化）"""
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """文字列リテラルの中身として ' を二重化"""
    return value.replace("'", "''")


@dataclass
class ExportStats:
    """1回のバックアップ実行の集計"""
    tables_exported: int = 0
    rows_exported: int = 0
    virtual_tables: int = 0
    auxiliary_objects: int = 0


@dataclass
class ExportState:
    """1回のバックアップ実行に閉じた可変状態"""
    writable_schema: bool = False
    stats: ExportStats = field(default_factory=ExportStats)
