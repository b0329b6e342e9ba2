# -*- coding: utf-8 -*-
########################
# finger_actions.py
########################
# Purpose:
# - Hand-chord fingerprints and hand-to-hand finger action classification.
#
# Key Logic:
# - Hand chord detection:
#   - fingerprint starts from the note's own finger: index = code**2, mask = code
#   - every linked chord note on the same hand sets hand_chord and folds in its code
#   - the index is additive, so different shapes can collide; that is accepted
# - Action classification (first rule wins), against the first later note on a different hand
#   starting no later than start_time + chord_threshold_ms:
#   1) no hand chord on either side and fingerprints differ -> ROLL
#   2) fingerprints equal                                   -> SIMPLE_JACK
#   3) finger masks share a finger                          -> TECHNICAL_JACK
#   4) otherwise                                            -> BRACKET
# - Notes without such a neighbor (always including the last note) keep FingerAction.NONE.
#
########################
# Interfaces:
# Public dataclasses:
# - ActionCounts(roll: int, simple_jack: int, technical_jack: int, bracket: int)
#   - record(action: FingerAction) -> None
#   - total() -> int
#   - to_dict() -> dict[str, int]
#
# Public functions:
# - detect_hand_chords(records) -> int
# - is_technical_jack(current: HitObjectData, following: HitObjectData) -> bool
# - classify_finger_action(current: HitObjectData, following: HitObjectData) -> FingerAction
# - compute_finger_actions(records, *, config: StrainConfig) -> ActionCounts
#
########################

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Sequence

from config import StrainConfig
from strain_models import FingerAction, HitObjectData

logger = logging.getLogger(__name__)


@dataclass
class ActionCounts:
    roll: int = 0
    simple_jack: int = 0
    technical_jack: int = 0
    bracket: int = 0

    def record(self, action: FingerAction) -> None:
        if action is FingerAction.ROLL:
            self.roll += 1
        elif action is FingerAction.SIMPLE_JACK:
            self.simple_jack += 1
        elif action is FingerAction.TECHNICAL_JACK:
            self.technical_jack += 1
        elif action is FingerAction.BRACKET:
            self.bracket += 1

    def total(self) -> int:
        return self.roll + self.simple_jack + self.technical_jack + self.bracket

    def to_dict(self) -> Dict[str, int]:
        return {
            "roll": int(self.roll),
            "simple_jack": int(self.simple_jack),
            "technical_jack": int(self.technical_jack),
            "bracket": int(self.bracket),
        }


def detect_hand_chords(records: Sequence[HitObjectData]) -> int:
    """Fill hand chord fingerprints. Returns how many notes are part of a hand chord."""
    hand_chord_notes = 0
    for record in records:
        own_code = int(record.finger_state)
        record.hand_chord = False
        record.hand_chord_state_index = own_code ** 2
        record.hand_chord_finger_mask = own_code

        for linked_index in record.linked_indices():
            linked = records[linked_index]
            if linked.hand != record.hand:
                continue
            linked_code = int(linked.finger_state)
            record.hand_chord = True
            record.hand_chord_state_index += linked_code ** 2
            record.hand_chord_finger_mask |= linked_code

        if record.hand_chord:
            hand_chord_notes += 1

    return hand_chord_notes


def is_technical_jack(current: HitObjectData, following: HitObjectData) -> bool:
    # TODO: confirm with chart authors whether a shared finger across chords is the intended
    # technical jack rule before tuning; until then shared fingers decide it.
    return (int(current.hand_chord_finger_mask) & int(following.hand_chord_finger_mask)) != 0


def classify_finger_action(current: HitObjectData, following: HitObjectData) -> FingerAction:
    chord_found = bool(current.hand_chord or following.hand_chord)
    same_state = int(current.hand_chord_state_index) == int(following.hand_chord_state_index)

    if not chord_found and not same_state:
        return FingerAction.ROLL
    if same_state:
        return FingerAction.SIMPLE_JACK
    if is_technical_jack(current, following):
        return FingerAction.TECHNICAL_JACK
    return FingerAction.BRACKET


def compute_finger_actions(records: Sequence[HitObjectData], *, config: StrainConfig) -> ActionCounts:
    counts = ActionCounts()
    window_ms = float(config.chord_threshold_ms)

    for index, current in enumerate(records):
        current.finger_action = FingerAction.NONE
        for following_index in range(index + 1, len(records)):
            following = records[following_index]
            if following.hand == current.hand:
                continue
            # Sorted input: nothing later can fall back inside the window.
            if float(following.start_time) > float(current.start_time) + window_ms:
                break

            action = classify_finger_action(current, following)
            current.finger_action = action
            counts.record(action)
            break

    logger.debug("Finger actions: %s", counts.to_dict())
    return counts


def _run_unit_tests() -> None:
    from strain_models import FingerState, Hand

    left = HitObjectData(index=0, start_time=0, end_time=0, lane=1, hand=Hand.LEFT, finger_state=FingerState.MIDDLE)
    right = HitObjectData(index=1, start_time=0, end_time=0, lane=3, hand=Hand.RIGHT, finger_state=FingerState.INDEX)
    detect_hand_chords([left, right])
    assert classify_finger_action(left, right) is FingerAction.ROLL

    right.finger_state = FingerState.MIDDLE
    detect_hand_chords([left, right])
    assert classify_finger_action(left, right) is FingerAction.SIMPLE_JACK

    counts = compute_finger_actions([left, right], config=StrainConfig())
    assert counts.to_dict() == {"roll": 0, "simple_jack": 1, "technical_jack": 0, "bracket": 0}
    assert left.finger_action is FingerAction.SIMPLE_JACK
    assert right.finger_action is FingerAction.NONE


if __name__ == "__main__":
    _run_unit_tests()
    print("finger_actions.py: ok")
