from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


logging.basicConfig(level=logging.INFO, stream=sys.stdout)
logger = logging.getLogger("applicant_intake")


def log_event(level: str, message: str, **kwargs: Any) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "message": message,
        "trace_id": None,
        **kwargs,
    }
    line = json.dumps(payload, ensure_ascii=True, default=str)
    if level.lower() == "error":
        logger.error(line)
    elif level.lower() == "warning":
        logger.warning(line)
    else:
        logger.info(line)
