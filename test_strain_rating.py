from __future__ import annotations

import logging

import pytest

from beatmap_models import Beatmap, GameMode, HitObjectInfo
from config import StrainConfig
from sample_charts import beatmap_from_rows, build_sample_beatmap
from strain_models import (
    FingerAction,
    Hand,
    LaneOutOfRangeError,
    StrainRatingError,
    StrainStage,
    UnsortedHitObjectsError,
    UnsupportedModeError,
)
from strain_rating import StrainRatingData


def test_two_note_chord_across_hands():
    rating = StrainRatingData(beatmap_from_rows(GameMode.KEYS4, [(1000, 1, 0), (1000, 4, 0)]))

    assert rating.stage() is StrainStage.DIFFICULTY_FINALIZED
    assert rating.average_note_density() == pytest.approx(2.0)
    assert rating.overall_difficulty() == pytest.approx(6.5)

    first, second = rating.hit_objects()
    assert first.linked_chorded_notes == {1}
    assert second.linked_chorded_notes == {0}
    assert not first.hand_chord and not second.hand_chord
    assert first.finger_action is FingerAction.SIMPLE_JACK
    assert second.finger_action is FingerAction.NONE

    summary = rating.summary()
    assert summary.note_count == 2
    assert summary.length_ms == 1000
    assert summary.chord_pairs == 1
    assert summary.simple_jack == 1
    assert summary.layered_pairs == 0
    assert summary.max_ln_strain_multiplier == 1.0


@pytest.mark.parametrize("rows", [[], [(0, 4, 0)], [(2500, 2, 3000)]])
def test_fewer_than_two_notes_rate_zero(rows):
    rating = StrainRatingData(beatmap_from_rows(GameMode.KEYS7, rows))
    assert rating.stage() is StrainStage.DIFFICULTY_FINALIZED
    assert rating.overall_difficulty() == 0.0
    assert rating.average_note_density() == 0.0
    assert rating.hit_objects() == ()
    assert rating.action_counts().total() == 0


def test_density_never_decreases_as_notes_are_added():
    fixed_rows = [(0, 1, 0), (10000, 2, 0)]
    previous_density = 0.0
    previous_difficulty = 0.0
    for extra in range(0, 20):
        middle_rows = [(500 * (step + 1), (step % 4) + 1, 0) for step in range(extra)]
        rows = sorted(fixed_rows + middle_rows, key=lambda row: row[0])
        rating = StrainRatingData(beatmap_from_rows(GameMode.KEYS4, rows))
        assert rating.average_note_density() >= previous_density
        assert rating.overall_difficulty() >= previous_difficulty
        previous_density = rating.average_note_density()
        previous_difficulty = rating.overall_difficulty()

    assert previous_density == pytest.approx(1000.0 * 21 / 10000)


def test_density_uses_hold_end_as_track_length():
    rating = StrainRatingData(beatmap_from_rows(GameMode.KEYS4, [(0, 1, 0), (1000, 2, 4000)]))
    assert rating.average_note_density() == pytest.approx(0.5)
    assert rating.summary().layered_pairs == 0


def test_rating_is_deterministic():
    beatmap = build_sample_beatmap(difficulty="hard")
    first = StrainRatingData(beatmap)
    second = StrainRatingData(beatmap)
    assert first.summary() == second.summary()
    assert first.hit_objects() == second.hit_objects()


def test_beatmap_is_left_untouched():
    beatmap = build_sample_beatmap(difficulty="medium")
    before = tuple(beatmap.hit_objects)
    rating = StrainRatingData(beatmap)
    assert rating.beatmap() is beatmap
    assert beatmap.hit_objects == before


def test_sample_difficulties_rank_in_order():
    easy = StrainRatingData(build_sample_beatmap(difficulty="easy")).overall_difficulty()
    medium = StrainRatingData(build_sample_beatmap(difficulty="medium")).overall_difficulty()
    hard = StrainRatingData(build_sample_beatmap(difficulty="hard")).overall_difficulty()
    assert 0.0 < easy < medium < hard


def test_density_scale_comes_from_config():
    beatmap = beatmap_from_rows(GameMode.KEYS4, [(1000, 1, 0), (1000, 4, 0)])
    rating = StrainRatingData(beatmap, config=StrainConfig(density_scale=1.0))
    assert rating.overall_difficulty() == pytest.approx(2.0)


def test_lane_out_of_range_is_rejected():
    with pytest.raises(LaneOutOfRangeError):
        StrainRatingData(beatmap_from_rows(GameMode.KEYS4, [(0, 5, 0), (10, 1, 0)]))
    with pytest.raises(LaneOutOfRangeError):
        StrainRatingData(beatmap_from_rows(GameMode.KEYS7, [(0, 0, 0)]))


def test_unsupported_mode_is_rejected():
    beatmap = Beatmap(mode="keys5", hit_objects=(HitObjectInfo(start_time=0, lane=1),))  # type: ignore[arg-type]
    with pytest.raises(UnsupportedModeError):
        StrainRatingData(beatmap)


def test_unsorted_input_is_rejected():
    beatmap = beatmap_from_rows(GameMode.KEYS4, [(1000, 1, 0), (500, 2, 0)])
    with pytest.raises(UnsortedHitObjectsError):
        StrainRatingData(beatmap)

    rating = StrainRatingData(beatmap.sorted_by_start_time())
    assert [record.start_time for record in rating.hit_objects()] == [500, 1000]


def test_rating_errors_share_a_base_class():
    assert issubclass(LaneOutOfRangeError, StrainRatingError)
    assert issubclass(UnsupportedModeError, StrainRatingError)
    assert issubclass(UnsortedHitObjectsError, StrainRatingError)


def test_stages_advance_in_order(caplog):
    caplog.set_level(logging.DEBUG, logger="strain_rating")
    StrainRatingData(beatmap_from_rows(GameMode.KEYS4, [(0, 1, 0), (100, 2, 0)]))

    transitions = [
        record.getMessage() for record in caplog.records if record.getMessage().startswith("Strain rating stage")
    ]
    assert transitions == [
        "Strain rating stage CREATED -> DENSITY_COMPUTED",
        "Strain rating stage DENSITY_COMPUTED -> BASE_STRAIN_COMPUTED",
        "Strain rating stage BASE_STRAIN_COMPUTED -> CHORDS_RESOLVED",
        "Strain rating stage CHORDS_RESOLVED -> FINGER_ACTIONS_COMPUTED",
        "Strain rating stage FINGER_ACTIONS_COMPUTED -> PATTERNS_COMPUTED",
        "Strain rating stage PATTERNS_COMPUTED -> DIFFICULTY_FINALIZED",
    ]


def test_short_map_skips_to_final_stage(caplog):
    caplog.set_level(logging.DEBUG, logger="strain_rating")
    StrainRatingData(beatmap_from_rows(GameMode.KEYS4, [(0, 1, 0)]))
    transitions = [
        record.getMessage() for record in caplog.records if record.getMessage().startswith("Strain rating stage")
    ]
    assert transitions == ["Strain rating stage CREATED -> DIFFICULTY_FINALIZED"]


def test_pattern_weigher_scales_difficulty():
    seen = {}

    class DoublingWeigher:
        def pattern_multiplier(self, records, counts) -> float:
            seen["notes"] = len(records)
            seen["simple_jack"] = counts.simple_jack
            return 2.0

    beatmap = beatmap_from_rows(GameMode.KEYS4, [(1000, 1, 0), (1000, 4, 0)])
    rating = StrainRatingData(beatmap, pattern_weigher=DoublingWeigher())

    assert seen == {"notes": 2, "simple_jack": 1}
    assert rating.pattern_multiplier() == 2.0
    assert rating.overall_difficulty() == pytest.approx(13.0)


def test_negative_pattern_multiplier_is_an_error():
    class NegativeWeigher:
        def pattern_multiplier(self, records, counts) -> float:
            return -0.5

    beatmap = beatmap_from_rows(GameMode.KEYS4, [(1000, 1, 0), (1000, 4, 0)])
    with pytest.raises(StrainRatingError):
        StrainRatingData(beatmap, pattern_weigher=NegativeWeigher())


def test_hand_objects_split_by_hand():
    rating = StrainRatingData(beatmap_from_rows(GameMode.KEYS7, [(0, 1, 0), (0, 4, 0), (0, 7, 0), (200, 2, 0)]))
    assert [record.lane for record in rating.hand_objects(Hand.LEFT)] == [1, 2]
    assert [record.lane for record in rating.hand_objects(Hand.AMBIGUOUS)] == [4]
    assert [record.lane for record in rating.hand_objects(Hand.RIGHT)] == [7]


def test_returned_records_cannot_change_results():
    rating = StrainRatingData(beatmap_from_rows(GameMode.KEYS4, [(1000, 1, 1500), (1000, 2, 2000)]))
    before = rating.summary()

    record = rating.hit_objects()[0]
    record.ln_strain_multiplier = 99.0
    record.ln_layering.clear()
    record.linked_chorded_notes.add(7)
    left = rating.hand_objects(Hand.LEFT)[1]
    left.finger_action = FingerAction.BRACKET

    assert rating.summary() == before
    assert rating.summary().max_ln_strain_multiplier == pytest.approx(1.2)
    assert rating.hit_objects()[0].ln_strain_multiplier == pytest.approx(1.2)
    assert rating.hit_objects()[0].linked_chorded_notes == {1}
    assert rating.hit_objects()[1].finger_action is FingerAction.NONE


def test_pattern_weigher_cannot_change_records():
    class MeddlingWeigher:
        def pattern_multiplier(self, records, counts) -> float:
            records[0].ln_strain_multiplier = 50.0
            counts.simple_jack = 40
            return 1.0

    beatmap = beatmap_from_rows(GameMode.KEYS4, [(1000, 1, 0), (1000, 4, 0)])
    rating = StrainRatingData(beatmap, pattern_weigher=MeddlingWeigher())
    assert rating.hit_objects()[0].ln_strain_multiplier == 1.0
    assert rating.action_counts().simple_jack == 1


def test_action_counts_are_a_copy():
    rating = StrainRatingData(beatmap_from_rows(GameMode.KEYS4, [(1000, 1, 0), (1000, 4, 0)]))
    counts = rating.action_counts()
    counts.simple_jack = 99
    assert rating.action_counts().simple_jack == 1


def test_summary_to_dict_is_json_ready():
    payload = StrainRatingData(build_sample_beatmap(difficulty="easy")).summary().to_dict()
    assert payload["mode"] == "keys4"
    assert payload["note_count"] == 32
    assert set(payload) >= {"overall_difficulty", "average_note_density", "roll", "bracket"}
