"""共通フィクスチャ"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import metrics
from d1_fakes import SQLiteD1Client, ListSink


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """環境変数とメトリクスのグローバル状態をテストごとに初期化"""
    for name in ('PROM_PUSHGATEWAY_URL', 'D1_ACCOUNT_ID', 'D1_DATABASE_ID',
                 'D1_API_KEY', 'D1_BACKUP_LIMIT', 'D1_BACKUP_FILE'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(metrics, '_pushgateway_client', None)
    yield


@pytest.fixture
def sqlite_client():
    client = SQLiteD1Client()
    yield client
    client.conn.close()


@pytest.fixture
def list_sink():
    return ListSink()
