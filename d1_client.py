"""Cloudflare D1 HTTP クエリAPIクライアント"""
import requests
import logging
import time
from typing import Any, Dict, List, Optional

try:
    from .exceptions import QueryError, NetworkError
except ImportError:
    from exceptions import QueryError, NetworkError


logger = logging.getLogger(__name__)

D1_QUERY_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/d1/database/{database_id}/query"


class D1Client:
    """D1 の /query エンドポイントにSQLを送信するクラス

    1リクエストに複数のSQL文（``;`` 区切り）をまとめて送ると、
    結果は文ごとのリストとして送信順に返される。
    """

    def __init__(self, account_id: str, database_id: str, api_key: str, timeout: int = 30):
        self.url = D1_QUERY_URL.format(account_id=account_id, database_id=database_id)
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = 3
        self.base_delay = 1.0

    def execute_batch(self, sql: str, params: Optional[List[Any]] = None,
                      retry_count: int = 0) -> List[Dict[str, Any]]:
        """SQLを実行し、文ごとの結果セットのリストを返す（リトライ機能付き）"""
        start_time = time.time()
        payload = {'sql': sql}
        if params is not None:
            payload['params'] = params
        try:
            response = requests.post(
                self.url,
                json=payload,
                timeout=self.timeout,
                headers={
                    'Content-Type': 'application/json',
                    'Authorization': f'Bearer {self.api_key}'
                }
            )
        except requests.exceptions.RequestException as e:
            timeout = isinstance(e, requests.exceptions.Timeout)
            if retry_count < self.max_retries:
                delay = self.base_delay * (2 ** retry_count)
                logger.warning(f"Network error: {e}, retrying in {delay}s")
                time.sleep(delay)
                return self.execute_batch(sql, params, retry_count + 1)
            raise NetworkError(
                f"D1への接続に失敗しました ({self.max_retries}回リトライ後): {e}",
                url=self.url,
                timeout=timeout
            )

        logger.info(f"D1 Query took: {int((time.time() - start_time) * 1000)}ms")

        if response.status_code == 429:
            # Rate limit - リトライ
            retry_after = float(response.headers.get('Retry-After', self.base_delay))
            if retry_count < self.max_retries:
                logger.warning(f"Rate limited, retrying after {retry_after}s")
                time.sleep(retry_after)
                return self.execute_batch(sql, params, retry_count + 1)
            raise NetworkError(f"Rate limit exceeded after {self.max_retries} retries", url=self.url)

        if response.status_code >= 500:
            error_msg = f"D1 API error: {response.status_code} {response.text}"
            if retry_count < self.max_retries:
                delay = self.base_delay * (2 ** retry_count)
                logger.warning(f"{error_msg}, retrying in {delay}s")
                time.sleep(delay)
                return self.execute_batch(sql, params, retry_count + 1)
            raise NetworkError(error_msg, url=self.url)

        return self._parse_response(response)

    def _parse_response(self, response: requests.Response) -> List[Dict[str, Any]]:
        """レスポンスボディを検証して結果リストを取り出す"""
        try:
            body = response.json()
        except ValueError:
            raise QueryError(f"D1 Error: 不正なレスポンス (HTTP {response.status_code})")

        errors = body.get('errors') if isinstance(body, dict) else None
        if errors:
            messages = [error.get('message', str(error)) if isinstance(error, dict) else str(error)
                        for error in errors]
            raise QueryError(f"D1 Error: {', '.join(messages)}", messages=messages)

        if response.status_code >= 400:
            raise QueryError(f"D1 Error: HTTP {response.status_code}")

        results = body.get('result') or []
        for result in results:
            if not result.get('success', True):
                raise QueryError("D1 Error: statement reported failure")
        return results

    def execute(self, sql: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        """単一SQLを実行し、最初の結果セットを返す"""
        results = self.execute_batch(sql, params)
        return results[0] if results else None

    def test_connection(self) -> bool:
        """D1接続テスト"""
        try:
            self.execute("SELECT 1")
            return True
        except (QueryError, NetworkError) as e:
            logger.error(f"D1 connection test failed: {e}")
            return False
