import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Any
from chat_sync.config.settings import settings

REDACT_LIMIT = 64


def _redact(value: Any) -> Any:
    # 只截断字符串，数字、状态码等结构化字段原样保留
    if isinstance(value, str) and len(value) > REDACT_LIMIT:
        return value[:REDACT_LIMIT]
    return value


class JsonFormatter(logging.Formatter):
    """每条记录输出一行 JSON；开启 log_redact_content 时 msg 与 extra 中的长字符串都会被截断。"""

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage() or ""
        redact = settings.log_redact_content
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": _redact(msg) if redact else msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update({k: _redact(v) for k, v in extra.items()} if redact else extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("chat_sync")
    logger.setLevel(settings.log_level)
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "chat_sync.log", encoding="utf-8")
    fh.setLevel(settings.log_level)
    fh.setFormatter(JsonFormatter())
    logger.addHandler(fh)
    return logger


logger = setup_logger()
