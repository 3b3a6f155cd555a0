import json
import logging

import pytest

from deposit_planner.logging_setup import PlannerJsonFormatter, log_plan, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_output_carries_service_metadata(restore_root_logger):
    setup_logging('DEBUG')

    formatter = restore_root_logger.handlers[0].formatter
    assert isinstance(formatter, PlannerJsonFormatter)
    record = logging.LogRecord('deposit_planner.solver', logging.WARNING, __file__, 1, 'No feasible deposit', None, None)
    payload = json.loads(formatter.format(record))
    assert payload['service'] == 'deposit-planner'
    assert payload['level'] == 'WARNING'
    assert payload['message'] == 'No feasible deposit'
    assert 'timestamp' in payload


def test_plain_output(restore_root_logger):
    setup_logging('INFO', json_output=False)

    formatter = restore_root_logger.handlers[0].formatter
    assert not isinstance(formatter, PlannerJsonFormatter)
    assert restore_root_logger.level == logging.INFO


def test_log_plan_passes_fields_as_extra(caplog):
    with caplog.at_level(logging.INFO, logger='deposit_planner.engine'):
        log_plan('2025-09-01', True, 1797.1, 0.0, True, 2)

    record = caplog.records[-1]
    assert record.getMessage() == 'Plan computed'
    assert record.mode == 'joint'
    assert record.monthly_total == 1797.1
    assert record.suggestions == 2
