from __future__ import annotations

import math

import pytest

from finger_actions import ActionCounts
from pattern_weights import (
    IdentityPatternWeigher,
    average_note_density,
    checked_pattern_multiplier,
    overall_difficulty,
)
from strain_models import StrainRatingError


def test_average_note_density():
    assert average_note_density(2, 1000) == 2.0
    assert average_note_density(30, 15000) == 2.0
    assert average_note_density(3, 0) == 0.0


def test_overall_difficulty_is_linear_in_density():
    assert overall_difficulty(2.0, density_scale=3.25) == pytest.approx(6.5)
    assert overall_difficulty(4.0, density_scale=3.25) == pytest.approx(13.0)
    assert overall_difficulty(2.0, density_scale=3.25, pattern_multiplier=0.5) == pytest.approx(3.25)


def test_identity_weigher():
    assert checked_pattern_multiplier(IdentityPatternWeigher(), (), ActionCounts()) == 1.0


@pytest.mark.parametrize("value", [-1.0, math.inf, math.nan])
def test_invalid_multipliers_are_rejected(value):
    class FixedWeigher:
        def pattern_multiplier(self, records, counts) -> float:
            return value

    with pytest.raises(StrainRatingError):
        checked_pattern_multiplier(FixedWeigher(), (), ActionCounts())
