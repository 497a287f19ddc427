"""JSON 行日志。

每行一个 JSON 对象：{ts, level, name, msg, ...extra}。
开启 log_redact_content 后，消息和可能包含文档内容的字段只保留前 64 个字符。
"""

import json
import logging
from pathlib import Path
from datetime import datetime, timezone

from legal_skill.config.settings import Settings, settings

REDACT_LIMIT = 64
# 可能携带合同正文或模型输出的字段
CONTENT_FIELDS = frozenset({"text", "preview", "body", "arguments", "verdict", "line"})


def _redact(value):
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    return text[:REDACT_LIMIT]


class JsonFormatter(logging.Formatter):
    def __init__(self, redact: bool = False):
        super().__init__()
        self.redact = redact

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self.redact:
            msg = (msg or "")[:REDACT_LIMIT]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            for key, value in extra.items():
                payload[key] = _redact(value) if self.redact and key in CONTENT_FIELDS else value
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(cfg: Settings = settings) -> logging.Logger:
    logger = logging.getLogger("legal_skill")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger
    log_dir = Path(cfg.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "agent.log", encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(JsonFormatter(redact=cfg.log_redact_content))
    logger.addHandler(fh)
    return logger


logger = setup_logger()
