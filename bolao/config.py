"""
Scoring configuration: base weights and the competition × phase multiplier table.
Also the one-time migration from the legacy two-map layout
(championshipWeights + phaseWeights) to the per-competition phase table.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from bolao.models import Phase, normalize_phase

logger = logging.getLogger(__name__)


# ---------- Base weights ----------
DEFAULT_EXACT_SCORE_POINTS = 10  # exact scoreline
DEFAULT_CORRECT_RESULT_POINTS = 3  # win / draw / loss
DEFAULT_CORRECT_GOALS_POINTS = 2  # per side whose goal count matches
DEFAULT_CORRECT_SCORER_POINTS = 5  # per correct scorer
DEFAULT_MAX_GOALS = 20

FALLBACK_MULTIPLIER = 1.0

# Legacy phase multipliers, used when an old document omits a phase.
LEGACY_PHASE_MULTIPLIERS: dict[str, float] = {
    Phase.ROUND_OF_16.value: 1.5,
    Phase.QUARTERFINAL.value: 1.75,
    Phase.SEMIFINAL.value: 2.0,
    Phase.FINAL.value: 3.0,
}


def _phase_table(regular: float) -> dict[str, float]:
    table = {Phase.REGULAR.value: regular}
    for phase, mult in LEGACY_PHASE_MULTIPLIERS.items():
        table[phase] = regular * mult
    return table


DEFAULT_PHASE_WEIGHTS: dict[str, dict[str, float]] = {
    "brasileirao": _phase_table(1.0),
    "carioca": _phase_table(0.5),
    "recopa": _phase_table(1.5),
    "supercopa": _phase_table(1.5),
}


@dataclass
class ScoringWeights:
    """Base points per criterion, before the competition/phase multiplier."""
    exact_score: float = DEFAULT_EXACT_SCORE_POINTS
    correct_result: float = DEFAULT_CORRECT_RESULT_POINTS
    correct_goals: float = DEFAULT_CORRECT_GOALS_POINTS
    correct_scorers: float = DEFAULT_CORRECT_SCORER_POINTS

    def to_dict(self) -> dict[str, float]:
        return {
            "exactScore": self.exact_score,
            "correctResult": self.correct_result,
            "correctGoals": self.correct_goals,
            "correctScorers": self.correct_scorers,
        }


@dataclass
class Configuration:
    """
    Singleton scoring configuration.
    phase_weights[competition_id][phase] -> multiplier.
    """
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    max_goals: int = DEFAULT_MAX_GOALS
    phase_weights: dict[str, dict[str, float]] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_PHASE_WEIGHTS)
    )

    def resolve_multiplier(self, competition_id: str | None, phase: str | None) -> float:
        return resolve_multiplier(self, competition_id, phase)

    def to_dict(self) -> dict[str, Any]:
        return config_to_dict(self)


def _positive(value: Any) -> float | None:
    """Return value as float if it is a positive number, else None."""
    if isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    if f != f or f <= 0:  # NaN or non-positive
        return None
    return f


def resolve_multiplier(config: Configuration, competition_id: str | None, phase: str | None) -> float:
    """
    Multiplier for a (competition, phase) pair. Never raises.
    Fallback: exact entry → competition's regular entry → 1.0.
    Missing, non-numeric and non-positive entries count as absent.
    """
    table = (config.phase_weights or {}).get(competition_id or "")
    if not isinstance(table, dict):
        return FALLBACK_MULTIPLIER
    exact = _positive(table.get(normalize_phase(phase)))
    if exact is not None:
        return exact
    regular = _positive(table.get(Phase.REGULAR.value))
    if regular is not None:
        return regular
    return FALLBACK_MULTIPLIER


# ---------- Serialization ----------


def config_to_dict(config: Configuration) -> dict[str, Any]:
    return {
        "maxGoals": config.max_goals,
        "weights": config.weights.to_dict(),
        "championshipPhaseWeights": copy.deepcopy(config.phase_weights),
    }


def _weights_from_dict(raw: dict[str, Any] | None) -> ScoringWeights:
    raw = raw or {}
    defaults = ScoringWeights()
    return ScoringWeights(
        exact_score=float(raw.get("exactScore", defaults.exact_score)),
        correct_result=float(raw.get("correctResult", defaults.correct_result)),
        correct_goals=float(raw.get("correctGoals", defaults.correct_goals)),
        correct_scorers=float(raw.get("correctScorers", defaults.correct_scorers)),
    )


def _normalize_table(raw: dict[str, Any] | None) -> dict[str, dict[str, float]]:
    """Copy the phase table, normalizing phase names and dropping non-numeric entries."""
    table: dict[str, dict[str, float]] = {}
    for comp_id, phases in (raw or {}).items():
        if not isinstance(phases, dict):
            continue
        entry: dict[str, float] = {}
        for phase, value in phases.items():
            try:
                entry[normalize_phase(phase)] = float(value)
            except (TypeError, ValueError):
                continue
        table[str(comp_id)] = entry
    return table


def config_from_dict(raw: dict[str, Any] | None) -> Configuration:
    """
    Build a Configuration from a stored document. Does not migrate legacy fields;
    use migrate_config for documents that may carry them.
    A document without a phase table gets the default table.
    """
    raw = raw or {}
    table_raw = raw.get("championshipPhaseWeights")
    return Configuration(
        weights=_weights_from_dict(raw.get("weights")),
        max_goals=int(raw.get("maxGoals", DEFAULT_MAX_GOALS)),
        phase_weights=(
            _normalize_table(table_raw)
            if isinstance(table_raw, dict)
            else copy.deepcopy(DEFAULT_PHASE_WEIGHTS)
        ),
    )


# ---------- Legacy migration ----------


@dataclass
class MigrationResult:
    config: Configuration
    migrated: bool  # True when entries were synthesized; caller should persist


def synthesize_phase_table(
    competition_weight: float, legacy_phase_weights: dict[str, Any] | None
) -> dict[str, float]:
    """
    regular = competition weight (not multiplied);
    other phases = competition weight × legacy phase multiplier (legacy defaults when absent).
    """
    legacy = {normalize_phase(k): v for k, v in (legacy_phase_weights or {}).items()}
    table = {Phase.REGULAR.value: float(competition_weight)}
    for phase, default in LEGACY_PHASE_MULTIPLIERS.items():
        mult = _positive(legacy.get(phase)) or default
        table[phase] = float(competition_weight) * mult
    return table


def migrate_config(raw: dict[str, Any] | None) -> MigrationResult:
    """
    Convert a stored config document into a Configuration, synthesizing the
    per-competition phase table from legacy championshipWeights/phaseWeights
    for any competition that has no table entry yet. Pure and idempotent:
    migrating the serialized output again reports migrated=False.
    """
    raw = raw or {}
    legacy_champ = raw.get("championshipWeights")
    has_table = isinstance(raw.get("championshipPhaseWeights"), dict)
    if not isinstance(legacy_champ, dict) or not legacy_champ:
        return MigrationResult(config=config_from_dict(raw), migrated=False)

    config = config_from_dict(raw)
    # A legacy-only document starts from an empty table, not the defaults.
    table = config.phase_weights if has_table else {}
    migrated = False
    for comp_id, weight in legacy_champ.items():
        if str(comp_id) in table:
            continue
        base = _positive(weight)
        if base is None:
            logger.warning("Skipping legacy weight for %s: %r is not a positive number", comp_id, weight)
            continue
        table[str(comp_id)] = synthesize_phase_table(base, raw.get("phaseWeights"))
        migrated = True
        logger.info("Migrated legacy weights for %s: %s", comp_id, table[str(comp_id)])
    config.phase_weights = table
    return MigrationResult(config=config, migrated=migrated)
