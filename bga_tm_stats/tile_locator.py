"""
Locate when a city or greenery from the final scoring table was placed
Final locations look like "Tharsis Hex 5,3 (5,3)" or a named area such as "Ganymede Colony"
"""
import re
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, List

from .models import ReplayLog, Move
from .phrases import tile_placements_in, played_card_in

logger = logging.getLogger(__name__)

PAREN_COORDS_PATTERN = re.compile(r'\(\s*(-?\d+)\s*,\s*(-?\d+)\s*\)')
BARE_COORDS_PATTERN = re.compile(r'^(-?\d+),(-?\d+)$')
TOKEN_SPLIT_PATTERN = re.compile(r'[\s|:]+')

# Tile names used in logs for each scoring category
TILE_NAMES = {
    'city': ('City',),
    'greenery': ('Forest', 'Greenery'),
}


@dataclass(frozen=True)
class NormalizedLocation:
    is_hex: bool
    map_name: Optional[str] = None
    coords: Optional[Tuple[int, int]] = None


def normalize_location(text: Optional[str]) -> NormalizedLocation:
    """Extract map name and x,y coordinates from a location string"""
    if not text:
        return NormalizedLocation(is_hex=False)

    coords = None
    paren_match = PAREN_COORDS_PATTERN.search(text)
    if paren_match:
        coords = (int(paren_match.group(1)), int(paren_match.group(2)))

    tokens = [t for t in TOKEN_SPLIT_PATTERN.split(text) if t]
    if coords is None:
        for token in tokens:
            bare_match = BARE_COORDS_PATTERN.match(token.strip('().,'))
            if bare_match:
                coords = (int(bare_match.group(1)), int(bare_match.group(2)))
                break

    # The map name is the token right before the literal word "Hex"
    map_name = None
    for i, token in enumerate(tokens):
        if token == 'Hex' and i > 0:
            map_name = tokens[i - 1]
            break

    if coords is None:
        return NormalizedLocation(is_hex=False, map_name=map_name)
    return NormalizedLocation(is_hex=True, map_name=map_name, coords=coords)


def locations_match(a: NormalizedLocation, b: NormalizedLocation) -> bool:
    """Hex locations match on coordinates, and on map name when both sides name one"""
    if not (a.is_hex and b.is_hex):
        return False
    if a.coords != b.coords:
        return False
    if a.map_name and b.map_name:
        return a.map_name.lower() == b.map_name.lower()
    return True


def _location_text_matches(final_location: str, logged_location: Optional[str]) -> bool:
    if not logged_location:
        return False
    final_lower = final_location.strip().lower()
    logged_lower = logged_location.strip().lower()
    if final_lower and logged_lower and (final_lower in logged_lower or logged_lower in final_lower):
        return True
    return locations_match(normalize_location(final_location), normalize_location(logged_location))


def _owner_moves(replay: ReplayLog, player_id: int) -> List[Move]:
    return [move for move in replay.moves if move.actor_id == player_id]


def find_placement_generation(replay: ReplayLog, player_id: int, location: str, tile_type: str) -> Optional[int]:
    """
    Find the generation a tile was placed at by its owner

    Args:
        replay: Parsed replay log
        player_id: Owner of the tile in the final state
        location: Final-state location string
        tile_type: 'city' or 'greenery'

    Returns:
        int: Generation of the placing move, or None when no move matches
    """
    tile_names = TILE_NAMES.get(tile_type, (tile_type,))
    owner_moves = _owner_moves(replay, player_id)

    # Structured place_tile moves first
    for move in owner_moves:
        if move.action_type != 'place_tile' or move.tile_placed not in tile_names:
            continue
        if _location_text_matches(location, move.tile_location):
            logger.debug(f"{tile_type} at {location}: matched structured move {move.move_number}")
            return move.generation

    # Then "places <Tile> ..." phrases
    for move in owner_moves:
        for placement in tile_placements_in(move.phrases):
            if placement['tile'] not in tile_names:
                continue
            if _location_text_matches(location, placement['location']):
                logger.debug(f"{tile_type} at {location}: matched phrase in move {move.move_number}")
                return move.generation

    # Named (off-map) cities come from a card of the same name
    if tile_type == 'city' and not normalize_location(location).is_hex:
        for move in owner_moves:
            card = move.card_played or played_card_in(move.phrases)
            if card and card.strip().lower() == location.strip().lower():
                logger.debug(f"city at {location}: matched card play in move {move.move_number}")
                return move.generation

    return None
