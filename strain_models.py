# -*- coding: utf-8 -*-
########################
# strain_models.py
########################
# Purpose:
# - Data models owned by the strain rating engine.
# - Per-note working records, classification enums, and the engine's error hierarchy.
#
# Design notes:
# - Working records are mutable and live in one list per engine run.
# - Chord links are indices into that list, never object references.
# - Each pipeline stage writes only the fields it owns (see strain_rating.py for stage order).
#
########################
# Interfaces:
# Public enums:
# - class Hand(enum.Enum): LEFT | RIGHT | AMBIGUOUS
# - class FingerState(enum.IntFlag): NONE | INDEX | MIDDLE | RING | PINKY | THUMB
# - class FingerAction(enum.Enum): NONE | ROLL | SIMPLE_JACK | TECHNICAL_JACK | BRACKET
# - class LnLayering(enum.Enum): LATER_END | EARLIER_END | NOT_LN
# - class StrainStage(enum.IntEnum): CREATED .. DIFFICULTY_FINALIZED
#
# Public exceptions:
# - class StrainRatingError(Exception)
# - class UnsupportedModeError(StrainRatingError)
# - class LaneOutOfRangeError(StrainRatingError)
# - class UnsortedHitObjectsError(StrainRatingError)
#
# Public dataclasses:
# - HitObjectData(index, start_time, end_time, lane, hand, finger_state, ...)
#   - is_hold() -> bool
#   - linked_indices() -> list[int]
#
########################

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Set


class StrainRatingError(Exception):
    """Base error for strain rating input that cannot be scored."""


class UnsupportedModeError(StrainRatingError):
    """Raised when no lane table exists for the beatmap's game mode."""


class LaneOutOfRangeError(StrainRatingError):
    """Raised when a hit object's lane is outside 1..key_count for its mode."""


class UnsortedHitObjectsError(StrainRatingError):
    """Raised when hit objects are not ascending by start time."""


class Hand(enum.Enum):
    LEFT = "left"
    RIGHT = "right"
    AMBIGUOUS = "ambiguous"


class FingerState(enum.IntFlag):
    NONE = 0
    INDEX = 1 << 0
    MIDDLE = 1 << 1
    RING = 1 << 2
    PINKY = 1 << 3
    THUMB = 1 << 4


class FingerAction(enum.Enum):
    NONE = "none"
    ROLL = "roll"
    SIMPLE_JACK = "simple_jack"
    TECHNICAL_JACK = "technical_jack"
    BRACKET = "bracket"


class LnLayering(enum.Enum):
    # Candidate hold ends after the current note's end.
    LATER_END = "later_end"
    # Candidate is a hold ending at or before the current note's end.
    EARLIER_END = "earlier_end"
    # Candidate is a tap.
    NOT_LN = "not_ln"


class StrainStage(enum.IntEnum):
    CREATED = 0
    DENSITY_COMPUTED = 1
    BASE_STRAIN_COMPUTED = 2
    CHORDS_RESOLVED = 3
    FINGER_ACTIONS_COMPUTED = 4
    PATTERNS_COMPUTED = 5
    DIFFICULTY_FINALIZED = 6


@dataclass
class HitObjectData:
    index: int
    start_time: int
    end_time: int
    lane: int
    hand: Hand
    finger_state: FingerState
    ln_strain_multiplier: float = 1.0
    ln_layering: List[LnLayering] = field(default_factory=list)
    linked_chorded_notes: Set[int] = field(default_factory=set)
    hand_chord: bool = False
    hand_chord_state_index: int = 0
    hand_chord_finger_mask: int = 0
    finger_action: FingerAction = FingerAction.NONE

    def is_hold(self) -> bool:
        return int(self.end_time) > 0

    def linked_indices(self) -> List[int]:
        return sorted(self.linked_chorded_notes)
