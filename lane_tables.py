# -*- coding: utf-8 -*-
########################
# lane_tables.py
########################
# Purpose:
# - Static lane -> (hand, finger) assignment per key mode.
#
# Design notes:
# - Tables are tuples indexed by lane - 1 and exposed through a read-only mapping.
# - No fallback: unknown modes and lanes outside the table are errors.
# - Shared by every engine instance; never mutated after import.
#
########################
# Interfaces:
# Public data:
# - LANE_TABLES: Mapping[GameMode, tuple[tuple[Hand, FingerState], ...]]
#
# Public functions:
# - lane_table(mode: GameMode) -> tuple[tuple[Hand, FingerState], ...]
# - lane_assignment(mode: GameMode, lane: int) -> tuple[Hand, FingerState]
#
########################

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Tuple

from beatmap_models import GameMode
from strain_models import FingerState, Hand, LaneOutOfRangeError, UnsupportedModeError

LaneEntry = Tuple[Hand, FingerState]


_LANE_TABLE_4K: Tuple[LaneEntry, ...] = (
    (Hand.LEFT, FingerState.MIDDLE),
    (Hand.LEFT, FingerState.INDEX),
    (Hand.RIGHT, FingerState.INDEX),
    (Hand.RIGHT, FingerState.MIDDLE),
)

_LANE_TABLE_7K: Tuple[LaneEntry, ...] = (
    (Hand.LEFT, FingerState.RING),
    (Hand.LEFT, FingerState.MIDDLE),
    (Hand.LEFT, FingerState.INDEX),
    (Hand.AMBIGUOUS, FingerState.THUMB),
    (Hand.RIGHT, FingerState.INDEX),
    (Hand.RIGHT, FingerState.MIDDLE),
    (Hand.RIGHT, FingerState.RING),
)

LANE_TABLES: Mapping[GameMode, Tuple[LaneEntry, ...]] = MappingProxyType(
    {
        GameMode.KEYS4: _LANE_TABLE_4K,
        GameMode.KEYS7: _LANE_TABLE_7K,
    }
)


def lane_table(mode: GameMode) -> Tuple[LaneEntry, ...]:
    table = LANE_TABLES.get(mode)
    if table is None:
        raise UnsupportedModeError(f"No lane table for game mode {mode!r}. Supported: {[item.value for item in LANE_TABLES]}")
    return table


def lane_assignment(mode: GameMode, lane: int) -> LaneEntry:
    table = lane_table(mode)
    lane_value = int(lane)
    if lane_value < 1 or lane_value > len(table):
        raise LaneOutOfRangeError(f"Lane {lane_value} is outside 1..{len(table)} for {mode.value}")
    return table[lane_value - 1]


def _run_unit_tests() -> None:
    assert lane_assignment(GameMode.KEYS4, 1) == (Hand.LEFT, FingerState.MIDDLE)
    assert lane_assignment(GameMode.KEYS4, 4) == (Hand.RIGHT, FingerState.MIDDLE)
    assert lane_assignment(GameMode.KEYS7, 4) == (Hand.AMBIGUOUS, FingerState.THUMB)
    assert lane_assignment(GameMode.KEYS7, 7) == (Hand.RIGHT, FingerState.RING)

    for bad_lane in (0, 5):
        try:
            lane_assignment(GameMode.KEYS4, bad_lane)
        except LaneOutOfRangeError:
            pass
        else:
            raise AssertionError(f"Expected LaneOutOfRangeError for lane {bad_lane}")

    try:
        lane_table("keys5")  # type: ignore[arg-type]
    except UnsupportedModeError:
        pass
    else:
        raise AssertionError("Expected UnsupportedModeError for an unknown mode")


if __name__ == "__main__":
    _run_unit_tests()
    print("lane_tables.py: ok")
