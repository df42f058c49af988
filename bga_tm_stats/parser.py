"""
Terraforming Mars replay log parser
Turns one scraped game log into the normalized row sets used for statistics
"""
import logging
from typing import List, Dict, Any, Optional, Union, Set

from .models import ReplayLog, parse_player_id, to_int
from .records import (
    ParsedGame, GameSummary, PlayerScore, StartingHandCorporation, StartingHandPrelude,
    StartingHandCard, MilestoneClaim, AwardFunding, ParameterChange, TrackerChange,
    CardRecord, CityLocation, GreeneryLocation,
)
from .card_tracker import CardTracker
from .progression import extract_parameter_changes, extract_tracker_changes
from .scoring import extract_milestones, extract_awards, extract_city_locations, extract_greenery_locations

logger = logging.getLogger(__name__)

BUY_PHRASE_PREFIX = "You buy "


def parse_duration_minutes(duration: Optional[str]) -> Optional[int]:
    """Convert an "HH:MM" game duration to minutes"""
    if not duration or not isinstance(duration, str):
        return None
    parts = duration.strip().split(':')
    if len(parts) != 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    return hours * 60 + minutes


class GameLogParser:
    """Stateless parser producing one row set per entity from a replay log"""

    def load(self, source: Union[ReplayLog, Dict[str, Any]]) -> ReplayLog:
        """Accept either an already loaded ReplayLog or the raw JSON document"""
        if isinstance(source, ReplayLog):
            return source
        return ReplayLog.from_dict(source)

    def parse_all(self, source: Union[ReplayLog, Dict[str, Any]]) -> ParsedGame:
        """
        Parse every entity list from a replay log

        Args:
            source: Raw JSON document or ReplayLog

        Returns:
            ParsedGame: Every reconstructed row set

        Raises:
            MalformedReplay: If the table id or perspective player cannot be parsed
        """
        replay = self.load(source)
        replay.require_perspective()

        logger.info(f"Parsing table {replay.table_id} ({len(replay.moves)} moves)")
        parsed = ParsedGame(
            game_stats=self.parse_game_stats(replay),
            player_stats=self.parse_player_stats(replay),
            starting_hand_corporations=self.parse_starting_hand_corporations(replay),
            starting_hand_preludes=self.parse_starting_hand_preludes(replay),
            starting_hand_cards=self.parse_starting_hand_cards(replay),
            milestones=self.parse_milestones(replay),
            awards=self.parse_awards(replay),
            parameter_changes=self.parse_parameter_changes(replay),
            cards=self.parse_cards(replay),
            city_locations=self.parse_city_locations(replay),
            greenery_locations=self.parse_greenery_locations(replay),
            tracker_changes=self.parse_tracker_changes(replay),
        )
        logger.info(f"Finished table {replay.table_id}: {len(parsed.cards)} cards, "
                    f"{len(parsed.parameter_changes)} parameter changes, {len(parsed.tracker_changes)} tracker changes")
        return parsed

    def parse_game_stats(self, source: Union[ReplayLog, Dict[str, Any]]) -> GameSummary:
        replay = self.load(source)
        return GameSummary(
            table_id=replay.table_id,
            generations=replay.generations,
            duration_minutes=parse_duration_minutes(replay.game_duration),
            player_count=len(replay.players),
            winner=replay.winner,
        )

    def parse_player_stats(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[PlayerScore]:
        """Final score and VP breakdown per player"""
        replay = self.load(source)
        rows = []
        for player_key, player in replay.players.items():
            player_id = parse_player_id(player_key)
            if player_id is None:
                logger.warning(f"Table {replay.table_id}: Unable to parse player ID '{player_key}', skipping player stats.")
                continue

            breakdown = player.vp_breakdown
            rows.append(PlayerScore(
                table_id=replay.table_id,
                player_id=player_id,
                corporation=player.corporation,
                final_score=player.final_vp,
                final_tr=player.final_tr,
                award_points=to_int(breakdown.get('awards')),
                milestone_points=to_int(breakdown.get('milestones')),
                city_points=to_int(breakdown.get('cities')),
                greenery_points=to_int(breakdown.get('greeneries')),
                card_points=to_int(breakdown.get('cards')),
            ))
        return rows

    def parse_starting_hand_corporations(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[StartingHandCorporation]:
        """Corporations offered to the perspective player; kept is the one they played"""
        replay = self.load(source)
        perspective_id = replay.require_perspective()
        player = replay.players.get(replay.player_perspective)
        if player is None:
            return []

        chosen = (player.corporation or "").lower()
        return [
            StartingHandCorporation(
                table_id=replay.table_id,
                player_id=perspective_id,
                corporation=corporation,
                kept=corporation.lower() == chosen,
            )
            for corporation in player.starting_hand.corporations
        ]

    def parse_starting_hand_preludes(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[StartingHandPrelude]:
        """Preludes offered to the perspective player; kept when it was played"""
        replay = self.load(source)
        perspective_id = replay.require_perspective()
        player = replay.players.get(replay.player_perspective)
        if player is None:
            return []

        played = {card.lower() for card in player.cards_played}
        return [
            StartingHandPrelude(
                table_id=replay.table_id,
                player_id=perspective_id,
                prelude=prelude,
                kept=prelude.lower() in played,
            )
            for prelude in player.starting_hand.preludes
        ]

    def parse_starting_hand_cards(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[StartingHandCard]:
        """Project cards dealt to the perspective player; kept when bought in the first buy move"""
        replay = self.load(source)
        perspective_id = replay.require_perspective()
        player = replay.players.get(replay.player_perspective)
        if player is None:
            return []

        bought = self._first_bought_cards(replay)
        return [
            StartingHandCard(
                table_id=replay.table_id,
                player_id=perspective_id,
                card=card,
                kept=card.lower() in bought,
            )
            for card in player.starting_hand.project_cards
        ]

    def _first_bought_cards(self, replay: ReplayLog) -> Set[str]:
        """Lowercased card names bought in the perspective player's earliest "You buy" move"""
        for move in replay.moves:
            if move.player_id != replay.player_perspective:
                continue
            if BUY_PHRASE_PREFIX.strip() not in move.description:
                continue
            return {
                phrase[len(BUY_PHRASE_PREFIX):].strip().lower()
                for phrase in move.phrases
                if phrase.startswith(BUY_PHRASE_PREFIX)
            }
        return set()

    def parse_milestones(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[MilestoneClaim]:
        return extract_milestones(self.load(source))

    def parse_awards(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[AwardFunding]:
        return extract_awards(self.load(source))

    def parse_parameter_changes(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[ParameterChange]:
        return extract_parameter_changes(self.load(source))

    def parse_tracker_changes(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[TrackerChange]:
        return extract_tracker_changes(self.load(source))

    def parse_cards(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[CardRecord]:
        """Card lifecycles for every player, from the perspective player's log"""
        return CardTracker(self.load(source)).run()

    def parse_city_locations(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[CityLocation]:
        return extract_city_locations(self.load(source))

    def parse_greenery_locations(self, source: Union[ReplayLog, Dict[str, Any]]) -> List[GreeneryLocation]:
        return extract_greenery_locations(self.load(source))

