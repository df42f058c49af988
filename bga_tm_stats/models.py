"""
Replay log model for Terraforming Mars games scraped from BoardGameArena
Turns the parsed game JSON into ordered, typed moves and players
"""
import json
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any

logger = logging.getLogger(__name__)


class MalformedReplay(ValueError):
    """Raised when a replay log cannot be keyed by table and perspective"""


def parse_player_id(value: Any) -> Optional[int]:
    """Parse a BGA player/table identifier, returning None when it is not an integer"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def to_int(value: Any) -> Optional[int]:
    """Lenient integer conversion for snapshot values"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    try:
        return int(str(value).strip())
    except (ValueError, TypeError):
        return None


def _as_name_list(value: Any) -> List[str]:
    """Normalize a card field that may hold one name or a list of names"""
    if not value:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v and str(v).strip()]
    return []


def _as_name_map(value: Any) -> Dict[str, List[str]]:
    """Normalize a player_id -> card names mapping"""
    if not isinstance(value, dict):
        return {}
    return {str(k): _as_name_list(v) for k, v in value.items()}


@dataclass
class GameState:
    """Represents the game state attached to a move"""
    move_number: Optional[int] = None
    generation: Optional[int] = None
    temperature: Optional[int] = None
    oxygen: Optional[int] = None
    oceans: Optional[int] = None
    player_vp: Dict[str, Dict[str, Any]] = None  # player_id -> VP breakdown
    milestones: Dict[str, Dict[str, Any]] = None  # milestone_name -> details
    awards: Dict[str, Dict[str, Any]] = None  # award_name -> details
    player_trackers: Dict[str, Dict[str, Any]] = None  # player_id -> tracker_name -> value

    def __post_init__(self):
        if self.player_vp is None:
            self.player_vp = {}
        if self.milestones is None:
            self.milestones = {}
        if self.awards is None:
            self.awards = {}
        if self.player_trackers is None:
            self.player_trackers = {}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameState':
        return cls(
            move_number=to_int(data.get('move_number')),
            generation=to_int(data.get('generation')),
            temperature=to_int(data.get('temperature')),
            oxygen=to_int(data.get('oxygen')),
            oceans=to_int(data.get('oceans')),
            player_vp=data.get('player_vp') if isinstance(data.get('player_vp'), dict) else {},
            milestones=data.get('milestones') if isinstance(data.get('milestones'), dict) else {},
            awards=data.get('awards') if isinstance(data.get('awards'), dict) else {},
            player_trackers=data.get('player_trackers') if isinstance(data.get('player_trackers'), dict) else {},
        )

    def _details(self, player_key: str, category: str) -> Dict[str, Any]:
        player_vp = self.player_vp.get(player_key)
        if not isinstance(player_vp, dict):
            return {}
        details = player_vp.get('details')
        if not isinstance(details, dict):
            return {}
        items = details.get(category)
        return items if isinstance(items, dict) else {}

    def card_vp(self, player_key: str) -> Dict[str, Optional[int]]:
        """Card name -> VP scored for one player"""
        result = {}
        for card_name, entry in self._details(player_key, 'cards').items():
            result[card_name] = to_int(entry.get('vp')) if isinstance(entry, dict) else to_int(entry)
        return result

    def city_vp(self, player_key: str) -> Dict[str, Optional[int]]:
        """City location -> VP for one player"""
        result = {}
        for location, entry in self._details(player_key, 'cities').items():
            result[location] = to_int(entry.get('vp')) if isinstance(entry, dict) else to_int(entry)
        return result

    def greenery_locations(self, player_key: str) -> List[str]:
        return list(self._details(player_key, 'greeneries').keys())

    def award_details(self, player_key: str) -> Dict[str, Dict[str, Any]]:
        """Award name -> {place, counter, vp} for one player"""
        return {
            name: entry for name, entry in self._details(player_key, 'awards').items()
            if isinstance(entry, dict)
        }


@dataclass
class Move:
    """Represents a single move in the game"""
    move_number: Optional[int]
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    action_type: Optional[str] = None
    description: str = ""
    timestamp: Optional[str] = None

    # Structured card and tile fields, present in newer logs only
    card_played: Optional[str] = None
    card_drafted: List[str] = field(default_factory=list)
    card_options: Dict[str, List[str]] = field(default_factory=dict)  # player_id -> offered cards
    cards_kept: Dict[str, List[str]] = field(default_factory=dict)  # player_id -> kept cards
    tile_placed: Optional[str] = None
    tile_location: Optional[str] = None

    # Game state after this move
    game_state: Optional[GameState] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Move':
        state = data.get('game_state')
        player_id = data.get('player_id')
        return cls(
            move_number=to_int(data.get('move_number')),
            player_id=str(player_id) if player_id is not None else None,
            player_name=data.get('player_name'),
            action_type=data.get('action_type'),
            description=data.get('description') or "",
            timestamp=data.get('timestamp'),
            card_played=(data.get('card_played') or None),
            card_drafted=_as_name_list(data.get('card_drafted')),
            card_options=_as_name_map(data.get('card_options')),
            cards_kept=_as_name_map(data.get('cards_kept')),
            tile_placed=data.get('tile_placed'),
            tile_location=data.get('tile_location'),
            game_state=GameState.from_dict(state) if isinstance(state, dict) else None,
        )

    @property
    def actor_id(self) -> Optional[int]:
        return parse_player_id(self.player_id)

    @property
    def generation(self) -> Optional[int]:
        return self.game_state.generation if self.game_state else None

    @property
    def phrases(self) -> List[str]:
        """Description split into its '|'-delimited log phrases"""
        return [part.strip() for part in self.description.split('|') if part.strip()]

    def has_phrase(self, text: str) -> bool:
        return text.lower() in self.description.lower()


@dataclass
class StartingHand:
    """Cards dealt to a player before the first generation"""
    corporations: List[str] = field(default_factory=list)
    preludes: List[str] = field(default_factory=list)
    project_cards: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> 'StartingHand':
        if not isinstance(data, dict):
            return cls()
        return cls(
            corporations=_as_name_list(data.get('corporations')),
            preludes=_as_name_list(data.get('preludes')),
            project_cards=_as_name_list(data.get('project_cards')),
        )


@dataclass
class Player:
    """Represents a player in the game"""
    player_id: str
    player_name: Optional[str] = None
    corporation: Optional[str] = None
    final_vp: Optional[int] = None
    final_tr: Optional[int] = None
    vp_breakdown: Dict[str, Any] = field(default_factory=dict)
    cards_played: List[str] = field(default_factory=list)
    starting_hand: StartingHand = field(default_factory=StartingHand)

    @classmethod
    def from_dict(cls, player_key: str, data: Dict[str, Any]) -> 'Player':
        return cls(
            player_id=str(player_key),
            player_name=data.get('player_name'),
            corporation=data.get('corporation'),
            final_vp=to_int(data.get('final_vp')),
            final_tr=to_int(data.get('final_tr')),
            vp_breakdown=data.get('vp_breakdown') if isinstance(data.get('vp_breakdown'), dict) else {},
            cards_played=_as_name_list(data.get('cards_played')),
            starting_hand=StartingHand.from_dict(data.get('starting_hand')),
        )


@dataclass
class ReplayLog:
    """A complete parsed game, keyed by its BGA table id"""
    table_id: int
    player_perspective: Optional[str]
    players: Dict[str, Player] = field(default_factory=dict)  # player_id -> Player
    moves: List[Move] = field(default_factory=list)
    game_duration: Optional[str] = None
    generations: Optional[int] = None
    winner: Optional[str] = None

    @classmethod
    def from_dict(cls, document: Dict[str, Any]) -> 'ReplayLog':
        """Build a replay log from the scraper's JSON document"""
        if not isinstance(document, dict):
            raise MalformedReplay("Replay log document must be a JSON object")

        replay_id = document.get('replay_id')
        table_id = parse_player_id(replay_id)
        if table_id is None:
            raise MalformedReplay(f"Cannot parse replay_id '{replay_id}' to integer")

        players = {}
        raw_players = document.get('players')
        if isinstance(raw_players, dict):
            for player_key, player_data in raw_players.items():
                if isinstance(player_data, dict):
                    players[str(player_key)] = Player.from_dict(player_key, player_data)

        moves = []
        raw_moves = document.get('moves')
        if isinstance(raw_moves, list):
            for move_data in raw_moves:
                if isinstance(move_data, dict):
                    moves.append(Move.from_dict(move_data))

        perspective = document.get('player_perspective')
        replay = cls(
            table_id=table_id,
            player_perspective=str(perspective) if perspective is not None else None,
            players=players,
            moves=moves,
            game_duration=document.get('game_duration'),
            generations=to_int(document.get('generations')),
            winner=document.get('winner'),
        )
        logger.debug(f"Loaded replay {table_id}: {len(moves)} moves, {len(players)} players")
        return replay

    @property
    def perspective_player_id(self) -> Optional[int]:
        return parse_player_id(self.player_perspective)

    def require_perspective(self) -> int:
        """Return the perspective player id, failing the parse when it is not an integer"""
        perspective_id = self.perspective_player_id
        if perspective_id is None:
            raise MalformedReplay(
                f"Cannot parse player_perspective '{self.player_perspective}' to integer for table {self.table_id}"
            )
        return perspective_id

    @property
    def final_state(self) -> Optional[GameState]:
        """Game state attached to the last move, authoritative for end-of-game data"""
        if not self.moves:
            return None
        return self.moves[-1].game_state

    def move_by_number(self, move_number: Optional[int]) -> Optional[Move]:
        if move_number is None:
            return None
        for move in self.moves:
            if move.move_number == move_number:
                return move
        return None

    def generation_of_move(self, move_number: Optional[int]) -> int:
        """Generation of the move with the given number, 0 when it cannot be resolved"""
        move = self.move_by_number(move_number)
        if move is None or move.generation is None:
            return 0
        return move.generation

    def player_id_by_name(self) -> Dict[str, int]:
        """Player name -> numeric player id, for resolving names in log phrases"""
        name_to_id = {}
        for player_key, player in self.players.items():
            player_id = parse_player_id(player_key)
            if player.player_name and player_id is not None:
                name_to_id[player.player_name] = player_id
        return name_to_id

    def corporation_names(self) -> set:
        names = set()
        for player in self.players.values():
            if player.corporation:
                names.add(player.corporation)
            names.update(player.starting_hand.corporations)
        return names


def load_replay_log(file_path: str) -> ReplayLog:
    """Load a replay log JSON file written by the scraper"""
    with open(file_path, 'r', encoding='utf-8') as f:
        document = json.load(f)
    return ReplayLog.from_dict(document)
