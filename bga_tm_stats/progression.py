"""
Global parameter and player tracker progression extracted from move snapshots
"""
import re
import logging
from typing import List, Dict, Tuple, Optional

from .models import ReplayLog, parse_player_id
from .records import ParameterChange, TrackerChange, TrackerType

logger = logging.getLogger(__name__)

# Parameter -> size of one step on its track
PARAMETER_STEPS = {
    'temperature': 2,
    'oxygen': 1,
    'oceans': 1,
}

TAG_TRACKER_PATTERN = re.compile(r'^Count of .+ tags$')


def classify_tracker(tracker_name: str) -> str:
    """Classify a tracker display name as Production, Tag or Resource"""
    if 'Production' in tracker_name:
        return TrackerType.PRODUCTION
    if TAG_TRACKER_PATTERN.match(tracker_name):
        return TrackerType.TAG
    return TrackerType.RESOURCE


def extract_parameter_changes(replay: ReplayLog) -> List[ParameterChange]:
    """Emit one row per unit step a global parameter was raised, attributed to the move's player"""
    changes = []
    previous: Dict[str, Optional[int]] = {name: None for name in PARAMETER_STEPS}

    for move in replay.moves:
        state = move.game_state
        if state is None:
            continue

        generation = state.generation
        actor_id = move.actor_id

        for parameter, step in PARAMETER_STEPS.items():
            current = getattr(state, parameter)
            last = previous[parameter]

            # Only record changes if generation is known
            if generation is not None and last is not None and current is not None and current > last:
                steps = (current - last) // step
                for k in range(1, steps + 1):
                    changes.append(ParameterChange(
                        table_id=replay.table_id,
                        parameter=parameter,
                        generation=generation,
                        increased_to=last + k * step,
                        increased_by=actor_id,
                    ))
                logger.debug(f"Move {move.move_number}: {parameter} {last} -> {current} by {actor_id}")

            if current is not None:
                previous[parameter] = current

    logger.info(f"Extracted {len(changes)} parameter changes for table {replay.table_id}")
    return changes


def extract_tracker_changes(replay: ReplayLog) -> List[TrackerChange]:
    """Emit a row every time a player's tracker value differs from the last one recorded"""
    changes = []
    last_values: Dict[Tuple[int, str], int] = {}
    skipped_keys = set()

    ordered_moves = sorted(
        (move for move in replay.moves if move.move_number is not None),
        key=lambda m: m.move_number
    )

    for move in ordered_moves:
        state = move.game_state
        if state is None or state.generation is None or not state.player_trackers:
            continue

        for player_key, trackers in state.player_trackers.items():
            player_id = parse_player_id(player_key)
            if player_id is None:
                if player_key not in skipped_keys:
                    logger.warning(f"Table {replay.table_id}: Unable to parse tracker player id '{player_key}', skipping player.")
                    skipped_keys.add(player_key)
                continue
            if not isinstance(trackers, dict):
                continue

            for tracker_name, value in trackers.items():
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    continue
                value = int(value)
                key = (player_id, tracker_name)
                if last_values.get(key) == value:
                    continue

                changes.append(TrackerChange(
                    table_id=replay.table_id,
                    player_id=player_id,
                    tracker=tracker_name,
                    tracker_type=classify_tracker(tracker_name),
                    generation=state.generation,
                    move_number=move.move_number,
                    changed_to=value,
                ))
                last_values[key] = value

    logger.info(f"Extracted {len(changes)} tracker changes for table {replay.table_id}")
    return changes
