# -*- coding: utf-8 -*-
########################
# chord_resolver.py
########################
# Purpose:
# - Long-note layering strain and chord links for strain_rating.py.
# - Both passes share one forward scan per note, bounded by tolerance windows.
#
# Key Logic:
# - For note i, the scan starts with i's lane covered and walks j = i+1, i+2, ...
#   - stop when every lane is covered
#   - stop when j starts after the scan limit:
#     hold: i.end_time + ln_end_threshold_ms
#     tap:  i.start_time + chord_threshold_ms
#   - skip j when its lane is already covered
#   - accept j when it starts inside the chord window (j.start - i.start < chord_threshold_ms),
#     or when i is a hold (anything before the limit layers with it)
#   - an accepted j covers its lane
# - Layering pass: every accepted j where i or j is a hold multiplies i.ln_strain_multiplier.
#   The three branches (LATER_END, EARLIER_END, NOT_LN) each have their own factor.
# - Chord pass: every accepted j inside the chord window is linked to i, and i to j.
#
# Design notes:
# - Requires records ascending by start_time (strain_rating.py checks before calling).
# - Mutates only the fields named per pass.
#
########################
# Interfaces:
# Public functions:
# - forward_matches(records, index: int, *, key_count: int, config: StrainConfig) -> list[int]
# - layering_branch(current: HitObjectData, candidate: HitObjectData) -> LnLayering
# - resolve_ln_layering(records, *, key_count: int, config: StrainConfig) -> int
# - resolve_chords(records, *, key_count: int, config: StrainConfig) -> int
#
########################

from __future__ import annotations

import logging
from typing import List, Sequence

from config import StrainConfig
from strain_models import HitObjectData, LnLayering

logger = logging.getLogger(__name__)


def _scan_limit(current: HitObjectData, config: StrainConfig) -> float:
    if current.is_hold():
        return float(current.end_time) + float(config.ln_end_threshold_ms)
    return float(current.start_time) + float(config.chord_threshold_ms)


def _in_chord_window(current: HitObjectData, candidate: HitObjectData, config: StrainConfig) -> bool:
    return abs(int(candidate.start_time) - int(current.start_time)) < float(config.chord_threshold_ms)


def forward_matches(
    records: Sequence[HitObjectData],
    index: int,
    *,
    key_count: int,
    config: StrainConfig,
) -> List[int]:
    current = records[index]
    covered = [False] * int(key_count)
    covered[int(current.lane) - 1] = True
    limit = _scan_limit(current, config)

    matches: List[int] = []
    for candidate_index in range(index + 1, len(records)):
        if all(covered):
            break

        candidate = records[candidate_index]
        if float(candidate.start_time) > limit:
            break

        lane_index = int(candidate.lane) - 1
        if covered[lane_index]:
            continue

        if not current.is_hold() and not _in_chord_window(current, candidate, config):
            continue

        covered[lane_index] = True
        matches.append(candidate_index)

    return matches


def layering_branch(current: HitObjectData, candidate: HitObjectData) -> LnLayering:
    if int(candidate.end_time) > int(current.end_time):
        return LnLayering.LATER_END
    if int(candidate.end_time) > 0:
        return LnLayering.EARLIER_END
    return LnLayering.NOT_LN


def _layering_multiplier(branch: LnLayering, config: StrainConfig) -> float:
    if branch is LnLayering.LATER_END:
        return float(config.ln_later_end_multiplier)
    if branch is LnLayering.EARLIER_END:
        return float(config.ln_earlier_end_multiplier)
    return float(config.ln_not_ln_multiplier)


def resolve_ln_layering(records: Sequence[HitObjectData], *, key_count: int, config: StrainConfig) -> int:
    """Apply long-note layering strain to every record. Returns the number of layered pairs."""
    layered_pairs = 0
    for index, current in enumerate(records):
        for candidate_index in forward_matches(records, index, key_count=key_count, config=config):
            candidate = records[candidate_index]
            if not current.is_hold() and not candidate.is_hold():
                continue
            branch = layering_branch(current, candidate)
            current.ln_layering.append(branch)
            current.ln_strain_multiplier *= _layering_multiplier(branch, config)
            layered_pairs += 1

    logger.debug("Long-note layering: %d layered pairs across %d notes", layered_pairs, len(records))
    return layered_pairs


def resolve_chords(records: Sequence[HitObjectData], *, key_count: int, config: StrainConfig) -> int:
    """Link simultaneous notes to each other. Returns the number of linked pairs."""
    linked_pairs = 0
    for index, current in enumerate(records):
        for candidate_index in forward_matches(records, index, key_count=key_count, config=config):
            candidate = records[candidate_index]
            if not _in_chord_window(current, candidate, config):
                continue
            if candidate_index in current.linked_chorded_notes:
                continue
            current.linked_chorded_notes.add(candidate_index)
            candidate.linked_chorded_notes.add(index)
            linked_pairs += 1

    logger.debug("Chords: %d linked pairs across %d notes", linked_pairs, len(records))
    return linked_pairs


def _run_unit_tests() -> None:
    from strain_models import FingerState, Hand

    def record(index: int, start_time: int, lane: int, end_time: int = 0) -> HitObjectData:
        return HitObjectData(
            index=index,
            start_time=start_time,
            end_time=end_time,
            lane=lane,
            hand=Hand.LEFT if lane <= 2 else Hand.RIGHT,
            finger_state=FingerState.INDEX,
        )

    config = StrainConfig()
    records = [
        record(0, 1000, 1, end_time=1500),
        record(1, 1000, 3, end_time=1800),
        record(2, 1200, 2),
        record(3, 2000, 4),
    ]

    assert resolve_chords(records, key_count=4, config=config) == 1
    assert records[0].linked_chorded_notes == {1}
    assert records[1].linked_chorded_notes == {0}
    assert records[2].linked_chorded_notes == set()

    resolve_ln_layering(records, key_count=4, config=config)
    assert records[0].ln_layering == [LnLayering.LATER_END, LnLayering.NOT_LN]
    assert abs(records[0].ln_strain_multiplier - 1.44) < 1e-9
    assert records[3].ln_strain_multiplier == 1.0


if __name__ == "__main__":
    _run_unit_tests()
    print("chord_resolver.py: ok")
