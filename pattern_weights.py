# -*- coding: utf-8 -*-
########################
# pattern_weights.py
########################
# Purpose:
# - Note density and the overall difficulty scalar.
# - Extension point for folding finger action patterns into difficulty.
#
# Design notes:
# - overall_difficulty = average_note_density * density_scale * pattern_multiplier
# - The default weigher is the identity (multiplier 1.0), so difficulty is linear in density.
# - A weigher must return a finite multiplier >= 0, which keeps difficulty non-decreasing in density.
#
########################
# Interfaces:
# Public constants:
# - SECONDS_TO_MILLISECONDS = 1000.0
#
# Public protocols and classes:
# - class ActionPatternWeigher(Protocol)
#   - pattern_multiplier(records, counts: ActionCounts) -> float
# - class IdentityPatternWeigher
#
# Public functions:
# - average_note_density(note_count: int, length_ms: float) -> float
# - checked_pattern_multiplier(weigher, records, counts) -> float
# - overall_difficulty(average_density: float, *, density_scale: float, pattern_multiplier: float = 1.0) -> float
#
########################

from __future__ import annotations

import math
from typing import Protocol, Sequence

from finger_actions import ActionCounts
from strain_models import HitObjectData, StrainRatingError

SECONDS_TO_MILLISECONDS = 1000.0


class ActionPatternWeigher(Protocol):
    def pattern_multiplier(self, records: Sequence[HitObjectData], counts: ActionCounts) -> float:
        raise NotImplementedError


class IdentityPatternWeigher:
    """Contributes no scaling. Used until pattern weights are tuned."""

    def pattern_multiplier(self, records: Sequence[HitObjectData], counts: ActionCounts) -> float:
        return 1.0


def average_note_density(note_count: int, length_ms: float) -> float:
    """Notes per second over the track length. 0 when the length is not positive."""
    length_value = float(length_ms)
    if length_value <= 0.0:
        return 0.0
    return SECONDS_TO_MILLISECONDS * int(note_count) / length_value


def checked_pattern_multiplier(
    weigher: ActionPatternWeigher,
    records: Sequence[HitObjectData],
    counts: ActionCounts,
) -> float:
    value = float(weigher.pattern_multiplier(records, counts))
    if not math.isfinite(value) or value < 0.0:
        raise StrainRatingError(f"Pattern multiplier must be finite and >= 0, got {value!r} from {type(weigher).__name__}")
    return value


def overall_difficulty(average_density: float, *, density_scale: float, pattern_multiplier: float = 1.0) -> float:
    return float(average_density) * float(density_scale) * float(pattern_multiplier)


def _run_unit_tests() -> None:
    assert average_note_density(2, 1000) == 2.0
    assert average_note_density(5, 0) == 0.0
    assert average_note_density(5, -10) == 0.0
    assert abs(overall_difficulty(2.0, density_scale=3.25) - 6.5) < 1e-9

    class BrokenWeigher:
        def pattern_multiplier(self, records, counts) -> float:
            return -1.0

    try:
        checked_pattern_multiplier(BrokenWeigher(), [], ActionCounts())
    except StrainRatingError:
        pass
    else:
        raise AssertionError("Expected StrainRatingError for a negative multiplier")

    assert checked_pattern_multiplier(IdentityPatternWeigher(), [], ActionCounts()) == 1.0


if __name__ == "__main__":
    _run_unit_tests()
    print("pattern_weights.py: ok")
