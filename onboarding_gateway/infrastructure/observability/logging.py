"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pythonjsonlogger import jsonlogger

from onboarding_gateway.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_submission(
    session_id: str,
    account_type: str,
    branch: str,
    succeeded: bool,
    failed_step: Optional[str],
    duration_ms: float,
) -> None:
    """Log structured submission outcome; never includes field values"""
    logging.info(
        "Submission completed",
        extra={
            "session_id": session_id,
            "step": "submission_complete",
            "account_type": account_type,
            "profile_branch": branch,
            "submission_outcome": "succeeded" if succeeded else "failed",
            "failed_step": failed_step,
            "duration_ms": duration_ms,
        },
    )


def log_draft_update(session_id: str, keys: List[str]) -> None:
    """Trace which draft keys changed; values are PII and are never logged"""
    if not keys:
        return
    logging.debug(
        "Draft updated",
        extra={
            "session_id": session_id,
            "step": "draft_update",
            "changed_keys": keys,
        },
    )
