"""設定ファイル読み込み機能"""
import json
import os
from typing import Dict, Any
try:
    from .exceptions import ConfigurationError
except ImportError:
    from exceptions import ConfigurationError


DEFAULT_LIMIT = 1000

# 環境変数で上書き可能な設定キー
ENV_OVERRIDES = {
    'accountId': 'D1_ACCOUNT_ID',
    'databaseId': 'D1_DATABASE_ID',
    'apiKey': 'D1_API_KEY',
    'limit': 'D1_BACKUP_LIMIT',
    'filePath': 'D1_BACKUP_FILE',
}

REQUIRED_FIELDS = ['accountId', 'databaseId', 'apiKey', 'filePath']


class ConfigLoader:
    """設定ファイルと環境変数から設定を読み込む"""

    def __init__(self, config_path: str = "config.json"):
        self.config_path = config_path
        self._config = None

    def load_config(self) -> Dict[str, Any]:
        """設定ファイルと環境変数から設定を読み込む"""
        if self._config is not None:
            return self._config

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except FileNotFoundError:
            # 環境変数だけで完結する場合はファイル無しでも可
            if not all(os.getenv(ENV_OVERRIDES[field]) for field in REQUIRED_FIELDS):
                raise ConfigurationError(
                    f"設定ファイル '{self.config_path}' が見つかりません",
                    config_path=self.config_path
                )
            config = {}
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"設定ファイルのJSON形式が正しくありません: {e}",
                config_path=self.config_path
            )

        if not isinstance(config, dict):
            raise ConfigurationError("設定ファイルのトップレベルはオブジェクトである必要があります",
                                     config_path=self.config_path)

        for field, env_name in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                config[field] = value

        # 必須フィールドの検証
        for field in REQUIRED_FIELDS:
            if not config.get(field):
                raise ConfigurationError(
                    f"必須フィールド '{field}' が設定ファイルにありません",
                    config_path=self.config_path
                )

        config['limit'] = self._validate_limit(config.get('limit', DEFAULT_LIMIT))

        self._config = config
        return self._config

    def _validate_limit(self, limit: Any) -> int:
        """ページサイズ (limit) の検証"""
        try:
            if isinstance(limit, bool):
                raise ValueError()
            value = int(limit)
            if value <= 0:
                raise ValueError()
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"limit は正の整数である必要があります: {limit}",
                config_path=self.config_path
            )
        return value

    @property
    def account_id(self) -> str:
        """CloudflareアカウントID"""
        return self.load_config()['accountId']

    @property
    def database_id(self) -> str:
        """D1データベースID"""
        return self.load_config()['databaseId']

    @property
    def api_key(self) -> str:
        """Cloudflare APIトークン"""
        return self.load_config()['apiKey']

    @property
    def limit(self) -> int:
        """1ページあたりの行数"""
        return self.load_config()['limit']

    @property
    def file_path(self) -> str:
        """ダンプ出力先"""
        return self.load_config()['filePath']
