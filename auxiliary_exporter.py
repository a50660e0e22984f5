"""インデックス・トリガー・ビューの作成文を出力"""
import logging

try:
    from .models import ExportState
except ImportError:
    from models import ExportState


logger = logging.getLogger(__name__)


class AuxiliaryExporter:
    """全テーブルの後に補助オブジェクトの作成文をカタログ順で出力する"""

    def __init__(self, enumerator, buffer):
        self.enumerator = enumerator
        self.buffer = buffer

    def export(self, state: ExportState) -> int:
        objects = self.enumerator.list_auxiliary_objects()
        for obj in objects:
            self.buffer.append(f"{obj['sql']};")
        state.stats.auxiliary_objects += len(objects)
        logger.info(f"Exported {len(objects)} indexes/triggers/views")
        return len(objects)
