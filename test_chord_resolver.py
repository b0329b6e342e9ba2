from __future__ import annotations

from typing import List, Tuple

import chord_resolver
from beatmap_models import GameMode
from config import StrainConfig
from lane_tables import lane_assignment
from strain_models import HitObjectData, LnLayering


def make_records(rows: List[Tuple[int, int, int]], mode: GameMode = GameMode.KEYS4) -> List[HitObjectData]:
    records = []
    for index, (start_time, lane, end_time) in enumerate(rows):
        hand, finger_state = lane_assignment(mode, lane)
        records.append(
            HitObjectData(
                index=index,
                start_time=start_time,
                end_time=end_time,
                lane=lane,
                hand=hand,
                finger_state=finger_state,
            )
        )
    return records


def resolve(rows, config=None, mode=GameMode.KEYS4):
    config = config if config is not None else StrainConfig()
    records = make_records(rows, mode)
    key_count = 4 if mode is GameMode.KEYS4 else 7
    chord_resolver.resolve_ln_layering(records, key_count=key_count, config=config)
    chord_resolver.resolve_chords(records, key_count=key_count, config=config)
    return records


def test_notes_starting_together_are_mutually_chorded():
    records = resolve([(1000, 1, 0), (1000, 3, 0), (1000, 4, 0)])
    assert records[0].linked_chorded_notes == {1, 2}
    assert records[1].linked_chorded_notes == {0, 2}
    assert records[2].linked_chorded_notes == {0, 1}


def test_notes_inside_chord_window_are_linked():
    records = resolve([(1000, 1, 0), (1007, 2, 0)])
    assert records[0].linked_chorded_notes == {1}
    assert records[1].linked_chorded_notes == {0}


def test_chord_window_excludes_its_boundary():
    records = resolve([(1000, 1, 0), (1008, 2, 0)])
    assert records[0].linked_chorded_notes == set()
    assert records[1].linked_chorded_notes == set()


def test_notes_beyond_chord_window_are_never_linked():
    records = resolve([(1000, 1, 0), (1009, 2, 0), (1030, 3, 0)])
    assert all(not record.linked_chorded_notes for record in records)


def test_same_lane_notes_are_not_linked_and_no_self_links():
    records = resolve([(1000, 1, 0), (1002, 1, 0)])
    for record in records:
        assert record.index not in record.linked_chorded_notes
        assert not record.linked_chorded_notes


def test_hold_overlap_does_not_create_chord_link():
    records = resolve([(1000, 1, 2000), (1500, 2, 0)])
    assert records[0].ln_layering == [LnLayering.NOT_LN]
    assert records[0].linked_chorded_notes == set()


def test_earlier_ending_hold_layers_into_later_branch():
    records = resolve([(1000, 1, 1500), (1000, 2, 2000)])
    assert records[0].ln_layering == [LnLayering.LATER_END]
    assert records[1].ln_layering == []


def test_later_ending_hold_takes_earlier_end_branch():
    records = resolve([(1000, 1, 2000), (1200, 2, 1500)])
    assert records[0].ln_layering == [LnLayering.EARLIER_END]


def test_branch_multipliers_are_distinguishable():
    config = StrainConfig(ln_later_end_multiplier=2.0, ln_earlier_end_multiplier=3.0, ln_not_ln_multiplier=5.0)

    later = resolve([(1000, 1, 1500), (1000, 2, 2000)], config=config)
    earlier = resolve([(1000, 1, 2000), (1200, 2, 1500)], config=config)
    not_ln = resolve([(1000, 1, 2000), (1200, 2, 0)], config=config)

    assert later[0].ln_strain_multiplier == 2.0
    assert earlier[0].ln_strain_multiplier == 3.0
    assert not_ln[0].ln_strain_multiplier == 5.0


def test_default_branches_share_one_factor():
    records = resolve([(1000, 1, 2000), (1000, 2, 2500), (1200, 3, 1500), (1400, 4, 0)])
    assert records[0].ln_layering == [LnLayering.LATER_END, LnLayering.EARLIER_END, LnLayering.NOT_LN]
    assert abs(records[0].ln_strain_multiplier - 1.2 ** 3) < 1e-9


def test_hold_overlap_window_after_hold_end():
    inside = resolve([(1000, 1, 2000), (2042, 2, 0)])
    outside = resolve([(1000, 1, 2000), (2043, 2, 0)])
    assert inside[0].ln_layering == [LnLayering.NOT_LN]
    assert outside[0].ln_layering == []


def test_tap_chords_do_not_add_long_note_strain():
    records = resolve([(1000, 1, 0), (1000, 2, 0)])
    assert records[0].ln_strain_multiplier == 1.0
    assert records[0].ln_layering == []


def test_tap_chorded_with_hold_layers():
    records = resolve([(1000, 1, 0), (1000, 2, 1800)])
    assert records[0].ln_layering == [LnLayering.LATER_END]


def test_each_lane_is_matched_once_per_scan():
    records = resolve([(0, 1, 10000), (100, 2, 0), (200, 3, 0), (300, 4, 0), (400, 2, 0)])
    assert len(records[0].ln_layering) == 3
    assert chord_resolver.forward_matches(records, 0, key_count=4, config=StrainConfig()) == [1, 2, 3]


def test_forward_matches_skip_covered_lane_and_continue():
    records = make_records([(0, 1, 10000), (100, 2, 0), (200, 2, 0), (300, 3, 0)])
    assert chord_resolver.forward_matches(records, 0, key_count=4, config=StrainConfig()) == [1, 3]


def test_seven_key_chord():
    records = resolve([(500, 1, 0), (500, 4, 0), (500, 7, 0)], mode=GameMode.KEYS7)
    assert records[1].linked_indices() == [0, 2]
