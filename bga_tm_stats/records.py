"""
Normalized rows reconstructed from a replay log
Timestamps are assigned by whoever stores the rows, never by the parser
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import List, Optional, Dict, Any


class DrawType:
    """Why a card became visible to a player"""
    STARTING_HAND = "StartingHand"
    DRAFT = "Draft"
    EFFECT = "Effect"
    PLAY_CARD = "PlayCard"
    ACTIVATION = "Activation"
    TILE = "Tile"
    REVEAL = "Reveal"


class TrackerType:
    PRODUCTION = "Production"
    TAG = "Tag"
    RESOURCE = "Resource"


@dataclass
class CardRecord:
    """Lifecycle of one card for one player in one game"""
    table_id: int
    player_id: int
    card: str
    seen_gen: Optional[int] = None
    drawn_gen: Optional[int] = None
    kept_gen: Optional[int] = None
    drafted_gen: Optional[int] = None
    bought_gen: Optional[int] = None
    played_gen: Optional[int] = None
    draw_type: Optional[str] = None
    draw_reason: Optional[str] = None
    vp_scored: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass
class ParameterChange:
    """One unit step of a global parameter"""
    table_id: int
    parameter: str  # temperature, oxygen or oceans
    generation: int
    increased_to: int
    increased_by: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass
class TrackerChange:
    """A new value of a player's resource, production or tag counter"""
    table_id: int
    player_id: int
    tracker: str
    tracker_type: str
    generation: int
    move_number: Optional[int]
    changed_to: int
    updated_at: Optional[datetime] = None


@dataclass
class MilestoneClaim:
    table_id: int
    milestone: str
    claimed_by: int
    claimed_gen: int
    updated_at: Optional[datetime] = None


@dataclass
class AwardFunding:
    """A funded award as seen by one placed player"""
    table_id: int
    player_id: int
    award: str
    funded_by: int
    funded_gen: int
    player_place: Optional[int] = None
    player_counter: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass
class CityLocation:
    table_id: int
    player_id: int
    city_location: str
    points: int = 0
    placed_gen: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass
class GreeneryLocation:
    table_id: int
    player_id: int
    greenery_location: str
    placed_gen: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass
class GameSummary:
    table_id: int
    generations: Optional[int] = None
    duration_minutes: Optional[int] = None
    player_count: int = 0
    winner: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass
class PlayerScore:
    """Final score and VP breakdown of one player"""
    table_id: int
    player_id: int
    corporation: Optional[str] = None
    final_score: Optional[int] = None
    final_tr: Optional[int] = None
    award_points: Optional[int] = None
    milestone_points: Optional[int] = None
    city_points: Optional[int] = None
    greenery_points: Optional[int] = None
    card_points: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass
class StartingHandCorporation:
    table_id: int
    player_id: int
    corporation: str
    kept: bool
    updated_at: Optional[datetime] = None


@dataclass
class StartingHandPrelude:
    table_id: int
    player_id: int
    prelude: str
    kept: bool
    updated_at: Optional[datetime] = None


@dataclass
class StartingHandCard:
    table_id: int
    player_id: int
    card: str
    kept: bool
    updated_at: Optional[datetime] = None


@dataclass
class ParsedGame:
    """Every row set reconstructed from one replay log"""
    game_stats: GameSummary
    player_stats: List[PlayerScore] = field(default_factory=list)
    starting_hand_corporations: List[StartingHandCorporation] = field(default_factory=list)
    starting_hand_preludes: List[StartingHandPrelude] = field(default_factory=list)
    starting_hand_cards: List[StartingHandCard] = field(default_factory=list)
    milestones: List[MilestoneClaim] = field(default_factory=list)
    awards: List[AwardFunding] = field(default_factory=list)
    parameter_changes: List[ParameterChange] = field(default_factory=list)
    cards: List[CardRecord] = field(default_factory=list)
    city_locations: List[CityLocation] = field(default_factory=list)
    greenery_locations: List[GreeneryLocation] = field(default_factory=list)
    tracker_changes: List[TrackerChange] = field(default_factory=list)

    @property
    def table_id(self) -> int:
        return self.game_stats.table_id

    def row_sets(self) -> Dict[str, List[Any]]:
        """Entity name -> rows, in storage order"""
        return {
            'game_stats': [self.game_stats],
            'player_stats': self.player_stats,
            'starting_hand_corporations': self.starting_hand_corporations,
            'starting_hand_preludes': self.starting_hand_preludes,
            'starting_hand_cards': self.starting_hand_cards,
            'milestones': self.milestones,
            'awards': self.awards,
            'parameter_changes': self.parameter_changes,
            'cards': self.cards,
            'city_locations': self.city_locations,
            'greenery_locations': self.greenery_locations,
            'tracker_changes': self.tracker_changes,
        }

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {name: [asdict(row) for row in rows] for name, rows in self.row_sets().items()}
