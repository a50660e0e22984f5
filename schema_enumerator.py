"""sqlite_master からテーブル一覧を取得・分類する"""
import logging
from typing import Any, Dict, List

try:
    from .models import TableDescriptor
except ImportError:
    from models import TableDescriptor


logger = logging.getLogger(__name__)

# rootpage の降順。依存関係を厳密に解決するものではなく、決定的な順序を得るため
LIST_TABLES_SQL = (
    "SELECT name, type, sql FROM sqlite_master "
    "WHERE sql IS NOT NULL AND type = 'table' ORDER BY rootpage DESC"
)

LIST_AUXILIARY_SQL = (
    "SELECT name, type, sql FROM sqlite_master "
    "WHERE sql IS NOT NULL AND type IN ('index', 'trigger', 'view')"
)


class SchemaEnumerator:
    """カタログからテーブル・補助オブジェクトを列挙する"""

    def __init__(self, client):
        self.client = client

    def list_tables(self) -> List[TableDescriptor]:
        """テーブル一覧を分類済みで返す"""
        tables = []
        for row in self._rows(LIST_TABLES_SQL):
            if not isinstance(row.get('name'), str):
                logger.warning(f"Table name is not string: {row.get('name')}")
                continue
            tables.append(TableDescriptor.from_catalog_row(row))
        logger.info(f"Found {len(tables)} tables in catalog")
        return tables

    def list_auxiliary_objects(self) -> List[Dict[str, Any]]:
        """インデックス・トリガー・ビューのカタログ行を返す"""
        return self._rows(LIST_AUXILIARY_SQL)

    def _rows(self, sql: str) -> List[Dict[str, Any]]:
        results = self.client.execute_batch(sql)
        if not results:
            return []
        return results[0].get('results') or []
