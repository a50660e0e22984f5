"""Prometheus Pushgateway へのバックアップメトリクス送信"""

import os
import logging
import requests
from typing import Dict, Optional

try:
    from .exceptions import PrometheusError
except ImportError:
    from exceptions import PrometheusError


logger = logging.getLogger(__name__)


class PushgatewayClient:
    """Prometheus Pushgateway への メトリクス送信クライアント"""

    def __init__(self, pushgateway_url: Optional[str] = None, job_name: str = "d1_backup"):
        self.pushgateway_url = pushgateway_url or os.getenv('PROM_PUSHGATEWAY_URL')
        self.job_name = job_name
        self.enabled = bool(self.pushgateway_url)

        if not self.enabled:
            logger.debug("Prometheus Pushgateway URL not configured, metrics disabled")
        else:
            logger.info(f"Pushgateway client initialized: {self.pushgateway_url}")

    def push_metric(self, name: str, labels: Dict[str, str], value: float = 1.0,
                    metric_type: str = "counter", help_text: str = "") -> bool:
        """メトリクスを Pushgateway に送信"""
        if not self.enabled:
            logger.debug(f"Metrics disabled, skipping: {name}")
            return True

        metric_data = self._build_metric_data(name, labels, value, metric_type, help_text)

        url = f"{self.pushgateway_url.rstrip('/')}/metrics/job/{self.job_name}"
        if 'instance' in labels:
            url += f"/instance/{labels['instance']}"

        try:
            response = requests.post(
                url,
                data=metric_data,
                headers={'Content-Type': 'text/plain; charset=utf-8'},
                timeout=10
            )
            response.raise_for_status()
        except requests.RequestException as e:
            error_msg = f"Failed to push metric {name}: {e}"
            logger.error(error_msg)
            raise PrometheusError(error_msg, metric_name=name)

        logger.debug(f"Metric pushed successfully: {name}={value}")
        return True

    def _build_metric_data(self, name: str, labels: Dict[str, str], value: float,
                           metric_type: str, help_text: str) -> str:
        """Prometheus exposition format でメトリクスデータを構築"""
        lines = []

        if help_text:
            lines.append(f"# HELP {name} {help_text}")
        lines.append(f"# TYPE {name} {metric_type}")

        if labels:
            label_str = ','.join(f'{k}="{v}"' for k, v in labels.items())
            lines.append(f"{name}{{{label_str}}} {value}")
        else:
            lines.append(f"{name} {value}")

        return '\n'.join(lines) + '\n'

    def increment_counter(self, name: str, labels: Dict[str, str] = None,
                          help_text: str = "") -> bool:
        """カウンターメトリクスを1増加"""
        return self.push_metric(
            name=name,
            labels=labels or {},
            value=1.0,
            metric_type="counter",
            help_text=help_text
        )

    def set_gauge(self, name: str, value: float, labels: Dict[str, str] = None,
                  help_text: str = "") -> bool:
        """ゲージメトリクスを設定"""
        return self.push_metric(
            name=name,
            labels=labels or {},
            value=value,
            metric_type="gauge",
            help_text=help_text
        )


# グローバルインスタンス
_pushgateway_client = None


def get_pushgateway_client() -> PushgatewayClient:
    """グローバル PushgatewayClient インスタンスを取得"""
    global _pushgateway_client
    if _pushgateway_client is None:
        _pushgateway_client = PushgatewayClient()
    return _pushgateway_client


def push_failure_metric(failure_type: str, error_message: str = "") -> bool:
    """バックアップ失敗メトリクスを送信"""
    client = get_pushgateway_client()

    labels = {
        "type": failure_type,
        "instance": os.getenv('HOSTNAME', 'localhost')
    }

    if error_message:
        # エラーメッセージのハッシュを追加（プライバシー保護のため）
        labels["error_hash"] = str(hash(error_message))[:8]

    return client.increment_counter(
        name="d1_backup_fail_total",
        labels=labels,
        help_text="Total number of backup failures by type"
    )


def push_backup_metric(tables_exported: int, rows_exported: int,
                       duration_seconds: float) -> bool:
    """バックアップ実行メトリクスを送信"""
    client = get_pushgateway_client()

    instance_labels = {"instance": os.getenv('HOSTNAME', 'localhost')}

    client.set_gauge(
        name="d1_backup_tables_exported",
        value=tables_exported,
        labels=instance_labels,
        help_text="Number of tables exported in last backup run"
    )
    client.set_gauge(
        name="d1_backup_rows_exported",
        value=rows_exported,
        labels=instance_labels,
        help_text="Number of rows exported in last backup run"
    )
    client.set_gauge(
        name="d1_backup_duration_seconds",
        value=duration_seconds,
        labels=instance_labels,
        help_text="Duration of last backup run in seconds"
    )

    return True
