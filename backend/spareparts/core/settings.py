# backend/spareparts/core/settings.py
import json
import logging
import os
from typing import Dict, List, Optional

from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv(filename=".env", usecwd=True), override=False)

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY_GROUPS: Dict[str, List[str]] = {
    "ComPlus": ["Candy", "Hoover", "Rosieres", "Iberna"],
}


def _parse_priority_groups(raw: Optional[str]) -> Dict[str, List[str]]:
    """
    PRIORITY_GROUPS is a JSON object: {"<party name>": ["Brand", ...], ...}.
    Key order is the evaluation order of the rules.
    """
    if not raw or not raw.strip():
        return dict(DEFAULT_PRIORITY_GROUPS)
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.error("PRIORITY_GROUPS is not valid JSON, falling back to defaults: %r", raw)
        return dict(DEFAULT_PRIORITY_GROUPS)
    if not isinstance(parsed, dict):
        logger.error("PRIORITY_GROUPS must be a JSON object, falling back to defaults")
        return dict(DEFAULT_PRIORITY_GROUPS)
    return {str(k): [str(b) for b in (v or [])] for k, v in parsed.items()}


class Settings:
    """
    Procurement knobs read from the environment.
    """

    def __init__(self) -> None:
        self.priority_groups: Dict[str, List[str]] = _parse_priority_groups(os.getenv("PRIORITY_GROUPS"))
        self.default_delivery_days: int = int(os.getenv("DEFAULT_DELIVERY_DAYS", "7"))
        self.reconcile_interval_minutes: int = int(os.getenv("RECONCILE_INTERVAL_MINUTES", "0"))
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
