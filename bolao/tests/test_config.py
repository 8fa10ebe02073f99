"""
Tests for the scoring configuration: multiplier fallback and legacy migration.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from bolao.config import (
    DEFAULT_PHASE_WEIGHTS,
    Configuration,
    config_from_dict,
    config_to_dict,
    migrate_config,
    resolve_multiplier,
    synthesize_phase_table,
)


@pytest.fixture
def config():
    return Configuration(phase_weights={"cup": {"regular": 2.0, "final": 4.0}})


class TestResolveMultiplier:
    def test_exact_entry(self, config):
        assert resolve_multiplier(config, "cup", "final") == 4.0

    def test_falls_back_to_regular(self, config):
        assert resolve_multiplier(config, "cup", "quarterfinal") == 2.0

    def test_unknown_competition(self, config):
        assert resolve_multiplier(config, "nope", "final") == 1.0

    def test_none_inputs(self, config):
        assert resolve_multiplier(config, None, None) == 1.0
        assert resolve_multiplier(config, "cup", None) == 2.0

    def test_legacy_phase_alias(self, config):
        config.phase_weights["cup"]["semifinal"] = 3.0
        assert resolve_multiplier(config, "cup", "semi") == 3.0

    def test_bad_entries_count_as_missing(self):
        cfg = Configuration(phase_weights={"cup": {"regular": 0, "final": "x"}, "odd": "not-a-table"})
        assert resolve_multiplier(cfg, "cup", "final") == 1.0
        assert resolve_multiplier(cfg, "odd", "regular") == 1.0

    def test_method_delegates(self, config):
        assert config.resolve_multiplier("cup", "final") == 4.0

    def test_default_table(self):
        cfg = Configuration()
        assert cfg.resolve_multiplier("carioca", "final") == 1.5
        assert cfg.resolve_multiplier("brasileirao", "quarterfinal") == 1.75
        assert cfg.resolve_multiplier("recopa", "regular") == 1.5


class TestSerialization:
    def test_round_trip_keeps_weights(self):
        cfg = Configuration()
        cfg.weights.exact_score = 12
        cfg.max_goals = 9
        back = config_from_dict(config_to_dict(cfg))
        assert back == cfg

    def test_empty_document_gets_defaults(self):
        cfg = config_from_dict({})
        assert cfg.weights.exact_score == 10
        assert cfg.phase_weights == DEFAULT_PHASE_WEIGHTS

    def test_stored_phase_names_are_normalized(self):
        cfg = config_from_dict({"championshipPhaseWeights": {"cup": {"oitavas": 1.5, "quartas": 1.75}}})
        assert cfg.phase_weights["cup"] == {"round_of_16": 1.5, "quarterfinal": 1.75}


class TestMigration:
    LEGACY = {
        "weights": {"exactScore": 10, "correctResult": 3, "correctGoals": 2, "correctScorers": 5},
        "championshipWeights": {"brasileirao": 3, "libertadores": 5},
        "phaseWeights": {"regular": 1, "oitavas": 1.5, "quartas": 2, "semi": 2.5, "final": 3},
    }

    def test_synthesizes_two_axis_table(self):
        result = migrate_config(self.LEGACY)
        assert result.migrated
        table = result.config.phase_weights["brasileirao"]
        assert table["regular"] == 3
        assert table["round_of_16"] == 4.5
        assert table["quarterfinal"] == 6
        assert table["semifinal"] == 7.5
        assert table["final"] == 9
        # legacy-only documents do not inherit the default competitions
        assert set(result.config.phase_weights) == {"brasileirao", "libertadores"}

    def test_missing_legacy_phase_uses_default_multiplier(self):
        table = synthesize_phase_table(2, {"final": 4})
        assert table["final"] == 8
        assert table["round_of_16"] == 3.0
        assert table["semifinal"] == 4.0

    def test_idempotent(self):
        first = migrate_config(self.LEGACY)
        again = migrate_config(config_to_dict(first.config))
        assert not again.migrated
        assert again.config == first.config

    def test_persisted_merge_is_not_migrated_again(self):
        first = migrate_config(self.LEGACY)
        merged = dict(self.LEGACY, championshipPhaseWeights=first.config.phase_weights)
        again = migrate_config(merged)
        assert not again.migrated
        assert again.config.phase_weights == first.config.phase_weights

    def test_only_missing_competitions_are_synthesized(self):
        raw = dict(self.LEGACY, championshipPhaseWeights={"brasileirao": {"regular": 1.0}})
        result = migrate_config(raw)
        assert result.migrated
        assert result.config.phase_weights["brasileirao"] == {"regular": 1.0}
        assert result.config.phase_weights["libertadores"]["regular"] == 5

    def test_modern_document_untouched(self):
        result = migrate_config({"championshipPhaseWeights": {"cup": {"regular": 1.0}}})
        assert not result.migrated
        assert result.config.phase_weights == {"cup": {"regular": 1.0}}

    def test_invalid_legacy_weight_skipped(self):
        result = migrate_config({"championshipWeights": {"cup": "heavy"}, "phaseWeights": {}})
        assert not result.migrated
        assert result.config.phase_weights == {}
