import json

import pytest

from deposit_planner.income import detect_salary_candidates
from deposit_planner.models import Transaction
from deposit_planner.settings import (
    DEFAULT_SETTINGS,
    EngineSettings,
    get_setting,
    load_settings,
    settings_from_dict,
)


def test_defaults_are_the_shipped_values():
    assert DEFAULT_SETTINGS.detection.monthly_gap == (26, 35)
    assert DEFAULT_SETTINGS.detection.salary_min_amount == 700.0
    assert DEFAULT_SETTINGS.solver.tolerance == 0.5
    assert DEFAULT_SETTINGS.start_dates.candidates_per_frequency['fortnightly'] == 3
    assert DEFAULT_SETTINGS.nudges.max_suggestions == 3
    assert EngineSettings() == DEFAULT_SETTINGS


def test_load_settings_overlays_file(tmp_path):
    config = tmp_path / 'planner.json'
    config.write_text(json.dumps({
        'detection': {'monthly_gap': [25, 36], 'salary_min_amount': 500},
        'solver': {'max_iterations': 20},
    }))

    settings = load_settings(config)

    assert settings.detection.monthly_gap == (25, 36)
    assert settings.detection.salary_min_amount == 500
    assert settings.solver.max_iterations == 20
    assert settings.solver.tolerance == DEFAULT_SETTINGS.solver.tolerance
    assert settings.nudges == DEFAULT_SETTINGS.nudges


def test_load_settings_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / 'missing.json')

    not_an_object = tmp_path / 'list.json'
    not_an_object.write_text('[1, 2]')
    with pytest.raises(ValueError):
        load_settings(not_an_object)


def test_unknown_keys_are_rejected():
    with pytest.raises(ValueError):
        settings_from_dict({'detection': {'no_such_threshold': 1}})
    with pytest.raises(ValueError):
        settings_from_dict({'plotting': {}})


def test_get_setting():
    assert get_setting(DEFAULT_SETTINGS, 'solver', 'max_expansions') == 8
    assert get_setting(DEFAULT_SETTINGS, 'solver', 'missing', 42) == 42
    assert get_setting(DEFAULT_SETTINGS, 'missing', 'key') is None


def test_override_changes_detection():
    txns = [
        Transaction(f'cb-{index}', day, 400.0, 'CHILD BENEFIT')
        for index, day in enumerate(['2025-01-06', '2025-02-06', '2025-03-06'])
    ]
    relaxed = settings_from_dict({'detection': {'salary_min_amount': 300}})

    assert detect_salary_candidates(txns) == []
    assert len(detect_salary_candidates(txns, relaxed.detection)) == 1
