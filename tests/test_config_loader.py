"""ConfigLoader のテスト"""

import json
import os
import pytest
from unittest.mock import patch

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config_loader import ConfigLoader, DEFAULT_LIMIT
from exceptions import ConfigurationError


@pytest.fixture
def write_config(tmp_path):
    def _write(data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
        return str(path)
    return _write


BASE_CONFIG = {
    'accountId': 'acc',
    'databaseId': 'db',
    'apiKey': 'key',
    'filePath': '/tmp/backup.sql',
}


class TestConfigLoader:
    """設定読み込みのテスト"""

    def test_load_with_default_limit(self, write_config):
        loader = ConfigLoader(write_config(BASE_CONFIG))

        assert loader.account_id == 'acc'
        assert loader.database_id == 'db'
        assert loader.api_key == 'key'
        assert loader.file_path == '/tmp/backup.sql'
        assert loader.limit == DEFAULT_LIMIT

    def test_custom_limit(self, write_config):
        loader = ConfigLoader(write_config(dict(BASE_CONFIG, limit=250)))
        assert loader.limit == 250

    @pytest.mark.parametrize("limit", [0, -5, "abc", True, None])
    def test_invalid_limit(self, write_config, limit):
        with pytest.raises(ConfigurationError):
            ConfigLoader(write_config(dict(BASE_CONFIG, limit=limit))).load_config()

    @pytest.mark.parametrize("field", ['accountId', 'databaseId', 'apiKey', 'filePath'])
    def test_missing_required_field(self, write_config, field):
        config = dict(BASE_CONFIG)
        del config[field]
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader(write_config(config)).load_config()
        assert field in str(exc_info.value)

    def test_invalid_json(self, write_config):
        with pytest.raises(ConfigurationError):
            ConfigLoader(write_config("{not json")).load_config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader(str(tmp_path / "missing.json")).load_config()
        assert exc_info.value.config_path.endswith("missing.json")

    def test_environment_overrides(self, write_config):
        """環境変数が設定ファイルより優先される"""
        env = {'D1_API_KEY': 'env-key', 'D1_BACKUP_LIMIT': '50'}
        with patch.dict(os.environ, env):
            loader = ConfigLoader(write_config(BASE_CONFIG))
            assert loader.api_key == 'env-key'
            assert loader.limit == 50

    def test_environment_only(self, tmp_path):
        """必須項目が全て環境変数にあれば設定ファイル無しでも可"""
        env = {
            'D1_ACCOUNT_ID': 'a',
            'D1_DATABASE_ID': 'd',
            'D1_API_KEY': 'k',
            'D1_BACKUP_FILE': str(tmp_path / "out.sql"),
        }
        with patch.dict(os.environ, env):
            loader = ConfigLoader(str(tmp_path / "missing.json"))
            assert loader.account_id == 'a'
            assert loader.limit == DEFAULT_LIMIT

    def test_config_is_cached(self, write_config):
        path = write_config(BASE_CONFIG)
        loader = ConfigLoader(path)
        first = loader.load_config()
        os.remove(path)
        assert loader.load_config() is first
