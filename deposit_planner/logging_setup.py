"""Structured JSON logging for hosts that embed the planner.

Modules only ever call ``logging.getLogger(__name__)``; the host decides
where records go by calling :func:`setup_logging` once at start-up.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = 'deposit-planner'


class PlannerJsonFormatter(JsonFormatter):
    """Adds timestamp, level and service name to every record."""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['service'] = SERVICE_NAME


def setup_logging(level: str = 'INFO', json_output: bool = True) -> None:
    """Send root logger output to stdout, as JSON lines unless ``json_output`` is False."""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        formatter: logging.Formatter = PlannerJsonFormatter('%(timestamp)s %(level)s %(name)s %(message)s')
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_plan(
    start_date: str,
    joint: bool,
    monthly_total: float,
    min_balance: float,
    feasible: bool,
    suggestions: Optional[int] = None,
) -> None:
    logging.getLogger('deposit_planner.engine').info(
        'Plan computed',
        extra={
            'step': 'plan_complete',
            'start_date': start_date,
            'mode': 'joint' if joint else 'single',
            'monthly_total': monthly_total,
            'min_balance': min_balance,
            'feasible': feasible,
            'suggestions': suggestions,
        },
    )
