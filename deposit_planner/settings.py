"""Tunable thresholds for detection, solving and bill nudges.

The defaults are empirically tuned values kept literally as first shipped.
Hosts that want to calibrate them against real data can keep overrides in a
JSON file and load them with :func:`load_settings`; the engine itself never
reads files, every function takes its settings as an argument.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Tuple, Union


@dataclass(frozen=True)
class DetectionSettings:
    weekly_gap: Tuple[int, int] = (5, 9)
    fortnightly_gap: Tuple[int, int] = (10, 18)
    monthly_gap: Tuple[int, int] = (26, 35)
    yearly_gap: Tuple[int, int] = (350, 380)
    # Exact fortnight override: force fortnightly when at least this many
    # gaps are exactly 14 days and they make up this share of all gaps.
    exact_fortnight_min_gaps: int = 3
    exact_fortnight_share: float = 0.6
    majority_share: float = 0.5
    plurality_share: float = 0.4
    plurality_min_gaps: int = 2
    two_point_monthly_gap: Tuple[int, int] = (30, 5)
    two_point_monthly_dom_slack: int = 3
    two_point_fortnight_gap: Tuple[int, int] = (14, 4)
    strict_min_hits: int = 3
    strict_min_hits_monthly: int = 2
    loose_min_hits: int = 2
    loose_amount_tolerance: float = 0.25
    loose_majority_share: float = 0.6
    merge_amount_slack: float = 1.0
    salary_min_amount: float = 700.0
    salary_bucket: float = 25.0
    salary_dedupe_bucket: float = 10.0


@dataclass(frozen=True)
class SolverSettings:
    lower_multiplier: float = 0.5
    upper_multiplier: float = 3.0
    max_expansions: int = 8
    max_iterations: int = 40
    tolerance: float = 0.5
    guard_iterations: int = 10


@dataclass(frozen=True)
class StartDateSettings:
    candidates_per_frequency: Dict[str, int] = field(default_factory=lambda: {
        'weekly': 4,
        'fortnightly': 3,
        'four_weekly': 2,
        'monthly': 2,
    })
    tie_relative: float = 0.005
    tie_absolute: float = 1.0


@dataclass(frozen=True)
class NudgeSettings:
    gate_factor_single: float = 1.10
    gate_factor_joint: float = 1.05
    surplus_months: float = 1.0
    max_offenders: int = 3
    widen_months: int = 6
    anchor_days: Tuple[int, ...] = (1, 8, 15, 22, 28)
    max_steps: int = 4
    min_step_improvement: float = 0.005
    max_suggestions: int = 3
    min_saving_absolute: float = 5.0
    min_saving_relative: float = 0.005
    awkward_pattern: str = r'mortgage|\brent\b|loan|insurance|assurance|\btax\b|revenue|council|pension|credit card'


@dataclass(frozen=True)
class EngineSettings:
    detection: DetectionSettings = field(default_factory=DetectionSettings)
    solver: SolverSettings = field(default_factory=SolverSettings)
    start_dates: StartDateSettings = field(default_factory=StartDateSettings)
    nudges: NudgeSettings = field(default_factory=NudgeSettings)


DEFAULT_SETTINGS = EngineSettings()

_SECTIONS = {
    'detection': DetectionSettings,
    'solver': SolverSettings,
    'start_dates': StartDateSettings,
    'nudges': NudgeSettings,
}


def settings_from_dict(data: Dict[str, Any], base: EngineSettings = DEFAULT_SETTINGS) -> EngineSettings:
    """Overlay a ``{section: {key: value}}`` mapping on ``base``."""
    updates = {}
    for section, overrides in (data or {}).items():
        if section not in _SECTIONS:
            raise ValueError(f"Unknown settings section '{section}'")
        current = getattr(base, section)
        known = {f.name: f for f in fields(current)}
        values = {}
        for key, value in (overrides or {}).items():
            if key not in known:
                raise ValueError(f"Unknown setting '{section}.{key}'")
            default = getattr(current, key)
            values[key] = tuple(value) if isinstance(default, tuple) else value
        updates[section] = replace(current, **values)
    return replace(base, **updates)


def load_settings(config_path: Union[str, Path]) -> EngineSettings:
    """Load calibration overrides from a JSON file.

    Args:
        config_path: Path to a JSON object with optional ``detection``,
            ``solver``, ``start_dates`` and ``nudges`` sections.

    Returns:
        The default settings with the file's values applied.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If a section or key is not recognised.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    with open(config_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must hold a JSON object: {config_path}")
    return settings_from_dict(data)


def get_setting(settings: EngineSettings, section: str, key: str, default: Any = None) -> Any:
    """Get a single setting by section and key, or ``default`` if absent."""
    try:
        return getattr(getattr(settings, section), key)
    except AttributeError:
        return default
