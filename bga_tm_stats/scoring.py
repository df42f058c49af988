"""
End-of-game rows read from the final game state: milestones, awards, cities and greeneries
"""
import logging
from typing import List, Dict, Tuple

from .models import ReplayLog, parse_player_id, to_int
from .records import MilestoneClaim, AwardFunding, CityLocation, GreeneryLocation
from .tile_locator import find_placement_generation

logger = logging.getLogger(__name__)


def extract_milestones(replay: ReplayLog) -> List[MilestoneClaim]:
    """One row per claimed milestone in the final state"""
    results = []
    final_state = replay.final_state
    if final_state is None or not final_state.milestones:
        return results

    for milestone_name, info in final_state.milestones.items():
        if not isinstance(info, dict):
            continue

        claimed_by = parse_player_id(info.get('player_id'))
        if claimed_by is None:
            logger.warning(f"Table {replay.table_id}: Unable to parse PlayerId '{info.get('player_id')}' for milestone '{milestone_name}', skipping.")
            continue

        claimed_gen = replay.generation_of_move(to_int(info.get('move_number')))
        results.append(MilestoneClaim(
            table_id=replay.table_id,
            milestone=milestone_name,
            claimed_by=claimed_by,
            claimed_gen=claimed_gen,
        ))

    logger.info(f"Extracted {len(results)} milestone claims for table {replay.table_id}")
    return results


def extract_awards(replay: ReplayLog) -> List[AwardFunding]:
    """One row per (funded award, player with a placement for it)"""
    rows = []
    final_state = replay.final_state
    if final_state is None or not final_state.awards or not final_state.player_vp:
        return rows

    # Precompute funded-by and funded generation for each award
    funding: Dict[str, Tuple[int, int]] = {}
    for award_name, info in final_state.awards.items():
        if not isinstance(info, dict):
            continue
        funded_by = parse_player_id(info.get('player_id'))
        if funded_by is None:
            logger.warning(f"Table {replay.table_id}: Unable to parse PlayerId '{info.get('player_id')}' for award '{award_name}', skipping funding info.")
            continue
        funding[award_name] = (funded_by, replay.generation_of_move(to_int(info.get('move_number'))))

    if not funding:
        return rows

    for player_key in final_state.player_vp:
        player_id = parse_player_id(player_key)
        if player_id is None:
            logger.warning(f"Table {replay.table_id}: Unable to parse PlayerVp key '{player_key}' to int, skipping player.")
            continue

        award_details = final_state.award_details(player_key)
        for award_name, (funded_by, funded_gen) in funding.items():
            details = award_details.get(award_name)
            if details is None:
                continue
            rows.append(AwardFunding(
                table_id=replay.table_id,
                player_id=player_id,
                award=award_name,
                funded_by=funded_by,
                funded_gen=funded_gen,
                player_place=to_int(details.get('place')),
                player_counter=to_int(details.get('counter')),
            ))

    logger.info(f"Extracted {len(rows)} award rows for table {replay.table_id}")
    return rows


def extract_city_locations(replay: ReplayLog) -> List[CityLocation]:
    """Cities scored in the final state, with the generation each was placed"""
    results = []
    final_state = replay.final_state
    if final_state is None:
        return results

    for player_key in final_state.player_vp:
        player_id = parse_player_id(player_key)
        if player_id is None:
            logger.warning(f"Table {replay.table_id}: Unable to parse PlayerVp key '{player_key}' to int, skipping cities.")
            continue

        for location, vp in final_state.city_vp(player_key).items():
            results.append(CityLocation(
                table_id=replay.table_id,
                player_id=player_id,
                city_location=location,
                points=vp or 0,
                placed_gen=find_placement_generation(replay, player_id, location, 'city'),
            ))

    return results


def extract_greenery_locations(replay: ReplayLog) -> List[GreeneryLocation]:
    """Greeneries scored in the final state, with the generation each was placed"""
    results = []
    final_state = replay.final_state
    if final_state is None:
        return results

    for player_key in final_state.player_vp:
        player_id = parse_player_id(player_key)
        if player_id is None:
            logger.warning(f"Table {replay.table_id}: Unable to parse PlayerVp key '{player_key}' to int, skipping greeneries.")
            continue

        for location in final_state.greenery_locations(player_key):
            results.append(GreeneryLocation(
                table_id=replay.table_id,
                player_id=player_id,
                greenery_location=location,
                placed_gen=find_placement_generation(replay, player_id, location, 'greenery'),
            ))

    return results
