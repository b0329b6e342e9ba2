# -*- coding: utf-8 -*-
########################
# strain_rating.py
########################
# Purpose:
# - Strain rating engine facade. Scores one Beatmap at construction time.
# - Produces overall difficulty, average note density, finger action counts, and per-note working records.
#
# Key Logic:
# - Fixed pipeline, each stage entered once and only forward:
#   CREATED -> DENSITY_COMPUTED -> BASE_STRAIN_COMPUTED -> CHORDS_RESOLVED
#   -> FINGER_ACTIONS_COMPUTED -> PATTERNS_COMPUTED -> DIFFICULTY_FINALIZED
# - Fewer than 2 hit objects: jump straight to DIFFICULTY_FINALIZED with zero outputs.
# - Input is checked before any stage runs:
#   - unsupported mode -> UnsupportedModeError
#   - lane outside 1..key_count -> LaneOutOfRangeError
#   - start times not ascending -> UnsortedHitObjectsError (sort with Beatmap.sorted_by_start_time() first)
#
# Design notes:
# - No I/O. No module level mutable state. Two engines on the same beatmap give equal results.
# - The Beatmap is never modified; working records are private, and accessors hand out copies.
# - Not restartable. Build a new StrainRatingData to score again.
#
########################
# Interfaces:
# Public dataclasses:
# - StrainSummary(...)
#   - to_dict() -> dict
#
# Public classes:
# - class StrainRatingData
#   - __init__(beatmap: Beatmap, config: Optional[StrainConfig] = None,
#              pattern_weigher: Optional[ActionPatternWeigher] = None)
#   - beatmap() -> Beatmap
#   - stage() -> StrainStage
#   - overall_difficulty() -> float
#   - average_note_density() -> float
#   - pattern_multiplier() -> float
#   - action_counts() -> ActionCounts
#   - hit_objects() -> tuple[HitObjectData, ...]
#   - hand_objects(hand: Hand) -> list[HitObjectData]
#   - summary() -> StrainSummary
#
########################

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import chord_resolver
import finger_actions
import lane_tables
import pattern_weights
from beatmap_models import Beatmap
from config import StrainConfig
from strain_models import (
    Hand,
    HitObjectData,
    LaneOutOfRangeError,
    StrainStage,
    UnsortedHitObjectsError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrainSummary:
    mode: str
    note_count: int
    length_ms: int
    average_note_density: float
    overall_difficulty: float
    pattern_multiplier: float
    roll: int
    simple_jack: int
    technical_jack: int
    bracket: int
    hand_chord_notes: int
    chord_pairs: int
    layered_pairs: int
    max_ln_strain_multiplier: float

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def _detached_copy(record: HitObjectData) -> HitObjectData:
    # Callers get their own records; the engine's copies stay as computed.
    return dataclasses.replace(
        record,
        ln_layering=list(record.ln_layering),
        linked_chorded_notes=set(record.linked_chorded_notes),
    )


class StrainRatingData:
    def __init__(
        self,
        beatmap: Beatmap,
        config: Optional[StrainConfig] = None,
        pattern_weigher: Optional[pattern_weights.ActionPatternWeigher] = None,
    ) -> None:
        self._beatmap = beatmap
        self._config = config if config is not None else StrainConfig()
        self._pattern_weigher = pattern_weigher if pattern_weigher is not None else pattern_weights.IdentityPatternWeigher()

        self._stage = StrainStage.CREATED
        self._records: List[HitObjectData] = []
        self._action_counts = finger_actions.ActionCounts()
        self._average_note_density = 0.0
        self._overall_difficulty = 0.0
        self._pattern_multiplier = 1.0
        self._hand_chord_notes = 0
        self._chord_pairs = 0
        self._layered_pairs = 0

        self._key_count = len(lane_tables.lane_table(beatmap.mode))
        self._check_input()

        # Don't bother rating maps with fewer than 2 hit objects.
        if len(beatmap.hit_objects) < 2:
            self._advance(StrainStage.DIFFICULTY_FINALIZED)
            return

        self._compute_note_density()
        self._compute_base_strain_states()
        self._compute_for_chords()
        self._compute_finger_actions()
        self._compute_action_patterns()
        self._calculate_overall_difficulty()

    def _check_input(self) -> None:
        previous_start: Optional[int] = None
        for position, hit_object in enumerate(self._beatmap.hit_objects):
            lane = int(hit_object.lane)
            if lane < 1 or lane > self._key_count:
                raise LaneOutOfRangeError(
                    f"Hit object #{position} has lane {lane}, outside 1..{self._key_count} for {self._beatmap.mode.value}"
                )
            start_time = int(hit_object.start_time)
            if previous_start is not None and start_time < previous_start:
                raise UnsortedHitObjectsError(
                    f"Hit object #{position} starts at {start_time} ms, before the previous one at {previous_start} ms"
                )
            previous_start = start_time

    def _advance(self, next_stage: StrainStage) -> None:
        if next_stage <= self._stage:
            raise RuntimeError(f"Stage {next_stage.name} cannot follow {self._stage.name}")
        logger.debug("Strain rating stage %s -> %s", self._stage.name, next_stage.name)
        self._stage = next_stage

    def _compute_note_density(self) -> None:
        self._average_note_density = pattern_weights.average_note_density(
            len(self._beatmap.hit_objects), self._beatmap.length()
        )
        self._advance(StrainStage.DENSITY_COMPUTED)

    def _compute_base_strain_states(self) -> None:
        records: List[HitObjectData] = []
        for index, hit_object in enumerate(self._beatmap.hit_objects):
            hand, finger_state = lane_tables.lane_assignment(self._beatmap.mode, hit_object.lane)
            records.append(
                HitObjectData(
                    index=index,
                    start_time=int(hit_object.start_time),
                    end_time=int(hit_object.end_time),
                    lane=int(hit_object.lane),
                    hand=hand,
                    finger_state=finger_state,
                )
            )
        self._records = records
        self._layered_pairs = chord_resolver.resolve_ln_layering(
            self._records, key_count=self._key_count, config=self._config
        )
        self._advance(StrainStage.BASE_STRAIN_COMPUTED)

    def _compute_for_chords(self) -> None:
        self._chord_pairs = chord_resolver.resolve_chords(self._records, key_count=self._key_count, config=self._config)
        self._advance(StrainStage.CHORDS_RESOLVED)

    def _compute_finger_actions(self) -> None:
        self._hand_chord_notes = finger_actions.detect_hand_chords(self._records)
        self._action_counts = finger_actions.compute_finger_actions(self._records, config=self._config)
        self._advance(StrainStage.FINGER_ACTIONS_COMPUTED)

    def _compute_action_patterns(self) -> None:
        self._pattern_multiplier = pattern_weights.checked_pattern_multiplier(
            self._pattern_weigher,
            tuple(_detached_copy(record) for record in self._records),
            dataclasses.replace(self._action_counts),
        )
        self._advance(StrainStage.PATTERNS_COMPUTED)

    def _calculate_overall_difficulty(self) -> None:
        self._overall_difficulty = pattern_weights.overall_difficulty(
            self._average_note_density,
            density_scale=float(self._config.density_scale),
            pattern_multiplier=self._pattern_multiplier,
        )
        self._advance(StrainStage.DIFFICULTY_FINALIZED)
        logger.info(
            "Rated %d notes: density=%.3f difficulty=%.3f",
            len(self._records),
            self._average_note_density,
            self._overall_difficulty,
        )

    def beatmap(self) -> Beatmap:
        return self._beatmap

    def stage(self) -> StrainStage:
        return self._stage

    def overall_difficulty(self) -> float:
        return float(self._overall_difficulty)

    def average_note_density(self) -> float:
        return float(self._average_note_density)

    def pattern_multiplier(self) -> float:
        return float(self._pattern_multiplier)

    def action_counts(self) -> finger_actions.ActionCounts:
        return dataclasses.replace(self._action_counts)

    def hit_objects(self) -> Tuple[HitObjectData, ...]:
        return tuple(_detached_copy(record) for record in self._records)

    def hand_objects(self, hand: Hand) -> List[HitObjectData]:
        return [_detached_copy(record) for record in self._records if record.hand == hand]

    def summary(self) -> StrainSummary:
        counts = self._action_counts
        max_multiplier = max((record.ln_strain_multiplier for record in self._records), default=1.0)
        return StrainSummary(
            mode=self._beatmap.mode.value,
            note_count=len(self._beatmap.hit_objects),
            length_ms=int(self._beatmap.length()),
            average_note_density=self.average_note_density(),
            overall_difficulty=self.overall_difficulty(),
            pattern_multiplier=self.pattern_multiplier(),
            roll=int(counts.roll),
            simple_jack=int(counts.simple_jack),
            technical_jack=int(counts.technical_jack),
            bracket=int(counts.bracket),
            hand_chord_notes=int(self._hand_chord_notes),
            chord_pairs=int(self._chord_pairs),
            layered_pairs=int(self._layered_pairs),
            max_ln_strain_multiplier=float(max_multiplier),
        )


def _run_unit_tests() -> None:
    from beatmap_models import GameMode, HitObjectInfo
    from strain_models import FingerAction

    pair = Beatmap(
        mode=GameMode.KEYS4,
        hit_objects=(HitObjectInfo(start_time=1000, lane=1), HitObjectInfo(start_time=1000, lane=4)),
    )
    rating = StrainRatingData(pair)
    assert rating.stage() is StrainStage.DIFFICULTY_FINALIZED
    assert abs(rating.average_note_density() - 2.0) < 1e-9
    assert abs(rating.overall_difficulty() - 6.5) < 1e-9
    records = rating.hit_objects()
    assert records[0].linked_chorded_notes == {1}
    assert records[1].linked_chorded_notes == {0}
    assert records[0].finger_action is FingerAction.SIMPLE_JACK
    assert records[1].finger_action is FingerAction.NONE

    single = StrainRatingData(Beatmap(mode=GameMode.KEYS7, hit_objects=(HitObjectInfo(start_time=0, lane=4),)))
    assert single.overall_difficulty() == 0.0
    assert single.average_note_density() == 0.0
    assert single.hit_objects() == ()

    assert StrainRatingData(pair).summary() == rating.summary()


if __name__ == "__main__":
    _run_unit_tests()
    print("strain_rating.py: ok")
