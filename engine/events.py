"""Structured JSON log events."""

from __future__ import annotations

import json
import logging


def _safe_json_dumps(payload, **kwargs):
    return json.dumps(payload, default=str, ensure_ascii=False, **kwargs)


def log_event(level, message, **fields):
    payload = {"message": message, **fields}
    try:
        logging.log(level, _safe_json_dumps(payload, sort_keys=True))
    except (TypeError, ValueError) as exc:
        logging.log(level, f"log_event_serialization_failed: {exc} message={message}")
