"""
Card lifecycle reconstruction for Terraforming Mars replay logs

Walks the moves once, combining the structured card fields of newer logs with
the log phrases of older ones, and records for every (player, card) when it was
seen, drawn, kept, drafted, bought and played, and why it was drawn.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import List, Dict, Optional, Tuple, Callable, Set

from .models import ReplayLog, Move, parse_player_id
from .phrases import (
    CardPhrase, parse_card_phrase, card_phrases, resolve_subject,
    played_card_in, activated_card_in, triggered_effects_in, removal_sources_in,
    tile_placements_in, new_generation_in,
    REVEAL_PATTERN, REVEAL_TAG_HIT_PATTERN,
    SKIPS_REST_PHRASE, RESEARCH_DRAFT_PHRASE, PASS_PHRASE,
)
from .records import CardRecord, DrawType
from .tile_locator import normalize_location

logger = logging.getLogger(__name__)

DRAFT_WINDOW_MOVES = 20  # how far back a buy/keep may be matched to a draft offer
DRAW_RESOLUTION_WINDOW = 10  # moves by the same player searched for keep/buy after a draw
INFERENCE_LOOKBACK = 3  # preceding moves by the same player searched for a draw cause
RESEARCH_DRAW_SIZE = 4

DRAFT_ACTION_TYPES = ('draft_card', 'draft')

# Effects that make their owner draw a card later in the log.
# signal: None when the draw follows right away, otherwise the phrase kind that confirms it
DRAW_EFFECTS = {
    'Point Luna': {'signal': None, 'cards': 1},
    'Spin-off Department': {'signal': None, 'cards': 1},
    'Mars University': {'signal': 'discard', 'cards': 1},
    'Olympus Conference': {'signal': 'removes', 'cards': 1},
}

Classification = Tuple[str, Optional[str]]  # (draw_type, draw_reason)


class EffectState(Enum):
    AWAITING_SIGNAL = "awaiting_signal"
    READY = "ready"
    CONSUMED = "consumed"


@dataclass
class PendingEffect:
    """A triggered effect waiting to be matched with the draw it causes"""
    reason: str
    signal: Optional[str] = None
    remaining: int = 1
    state: EffectState = EffectState.AWAITING_SIGNAL
    target_draw_event: Optional[int] = None

    @property
    def requires_confirmation(self) -> bool:
        return self.signal is not None

    @property
    def ready(self) -> bool:
        return self.state is EffectState.READY

    def arm(self, draw_event_number: int):
        self.state = EffectState.READY
        self.target_draw_event = draw_event_number

    def consume(self):
        self.remaining -= 1
        if self.remaining <= 0:
            self.state = EffectState.CONSUMED


def lookup_draw_effect(name: str) -> Optional[str]:
    """Match a "triggered effect of ..." name against the known draw effects"""
    for effect_name in DRAW_EFFECTS:
        if name == effect_name or name.startswith(effect_name):
            return effect_name
    return None


class CardLedger:
    """One CardRecord per (player, card); fields are first-write-wins"""

    def __init__(self, table_id: int):
        self.table_id = table_id
        self._records: Dict[Tuple[int, str], CardRecord] = {}

    def get(self, player_id: int, card: str) -> CardRecord:
        key = (player_id, card)
        record = self._records.get(key)
        if record is None:
            record = CardRecord(table_id=self.table_id, player_id=player_id, card=card)
            self._records[key] = record
        return record

    def find(self, player_id: int, card: str) -> Optional[CardRecord]:
        return self._records.get((player_id, card))

    def mark(self, player_id: int, card: str, **fields) -> CardRecord:
        """Set each field only if it has not been set before"""
        record = self.get(player_id, card)
        for name, value in fields.items():
            if value is not None and getattr(record, name) is None:
                setattr(record, name, value)
        return record

    def force(self, player_id: int, card: str, **fields) -> CardRecord:
        record = self.get(player_id, card)
        for name, value in fields.items():
            setattr(record, name, value)
        return record

    def records(self) -> List[CardRecord]:
        return list(self._records.values())


@dataclass
class DrawContext:
    """A draw event: the cards one player drew in one move"""
    index: int
    move: Move
    player_id: int
    names: List[str]
    declared_count: Optional[int]
    generation: int
    previous_generation: Optional[int]
    draw_event_number: int
    inferred: Optional[Classification] = None
    inference_done: bool = False


class CardTracker:
    """Reconstructs card lifecycles from a single replay log"""

    def __init__(self, replay: ReplayLog):
        self.replay = replay
        self.perspective_id = replay.require_perspective()
        self.name_to_id = replay.player_id_by_name()
        self.corporations = replay.corporation_names()
        self.ledger = CardLedger(replay.table_id)

        # Working state, local to this tracker
        self.pending_effects: Dict[int, List[PendingEffect]] = defaultdict(list)
        self.draw_event_counter: Dict[int, int] = defaultdict(int)
        self.draft_events: Dict[str, List[Tuple[Optional[int], int, Optional[int]]]] = defaultdict(list)
        self.dealt_preludes: Dict[int, Set[str]] = defaultdict(set)

        # Precedence of draw causes, first success wins
        self.draw_classifiers: Tuple[Callable[[DrawContext], Optional[Classification]], ...] = (
            self._classify_draft,
            self._classify_effect,
            self._classify_inferred,
        )

    def run(self) -> List[CardRecord]:
        """Scan all moves and return the finalized card records"""
        self._mark_starting_hands()

        current_gen = 1
        previous_gen = None
        for index, move in enumerate(self.replay.moves):
            if move.generation is not None:
                current_gen = move.generation
            self._process_move(index, move, current_gen, previous_gen)
            previous_gen = current_gen

        self._join_final_vp()
        self._apply_invariants()

        records = self.ledger.records()
        logger.info(f"Reconstructed {len(records)} card records for table {self.replay.table_id}")
        return records

    # ---- forward scan ----

    def _process_move(self, index: int, move: Move, gen: int, previous_gen: Optional[int]):
        phrases = move.phrases
        self._update_pending_effects(move, phrases)
        self._record_options(move, gen)
        self._record_drafts(move, gen, phrases)
        self._record_draws(index, move, gen, previous_gen, phrases)
        self._record_keeps(move, gen, phrases)
        self._record_buys(move, gen, phrases)
        self._record_plays(move, gen, phrases)

    def _is_card(self, name: Optional[str]) -> bool:
        return bool(name) and name not in self.corporations

    def _subject_id(self, phrase: CardPhrase) -> Optional[int]:
        return resolve_subject(phrase.subject, self.perspective_id, self.name_to_id)

    def _mark_starting_hands(self):
        """Every dealt project card is seen and drawn in generation 1"""
        for player_key, player in self.replay.players.items():
            player_id = parse_player_id(player_key)
            if player_id is None:
                logger.warning(f"Table {self.replay.table_id}: Could not parse player ID '{player_key}'. Skipping starting hand.")
                continue

            for card in player.starting_hand.project_cards:
                self.ledger.mark(player_id, card, seen_gen=1, drawn_gen=1, draw_type=DrawType.STARTING_HAND)

            for prelude in player.starting_hand.preludes:
                self.dealt_preludes[player_id].add(prelude)
                self.ledger.mark(player_id, prelude, seen_gen=1)

    def _record_options(self, move: Move, gen: int):
        """Cards offered to each player are seen and drawn"""
        for player_key, names in move.card_options.items():
            player_id = parse_player_id(player_key)
            if player_id is None:
                logger.debug(f"Move {move.move_number}: unparsable option receiver '{player_key}'")
                continue
            for name in names:
                if not self._is_card(name):
                    continue
                self.ledger.mark(player_id, name, seen_gen=gen, drawn_gen=gen)
                self.draft_events[name].append((move.move_number, gen, player_id))

    def _record_drafts(self, move: Move, gen: int, phrases: List[str]):
        drafted: List[Tuple[int, str]] = []

        if move.actor_id is not None:
            drafted.extend((move.actor_id, name) for name in move.card_drafted)

        for phrase in card_phrases(phrases, 'draft'):
            player_id = self._subject_id(phrase)
            if player_id is None:
                continue
            drafted.extend((player_id, name) for name in phrase.cards)

        for player_id, name in drafted:
            if not self._is_card(name):
                continue
            self.ledger.mark(
                player_id, name,
                seen_gen=gen, drawn_gen=gen, drafted_gen=gen, draw_type=DrawType.DRAFT
            )
            self.draft_events[name].append((move.move_number, gen, player_id))
            logger.debug(f"Move {move.move_number}: player {player_id} drafts {name}")

    def _record_keeps(self, move: Move, gen: int, phrases: List[str]):
        kept: List[Tuple[int, str]] = []

        for player_key, names in move.cards_kept.items():
            player_id = parse_player_id(player_key)
            if player_id is None:
                continue
            kept.extend((player_id, name) for name in names)

        for phrase in card_phrases(phrases, 'keep'):
            player_id = self._subject_id(phrase)
            if player_id is None:
                continue
            kept.extend((player_id, name) for name in phrase.cards)

        for player_id, name in kept:
            if not self._is_card(name):
                continue
            self.ledger.mark(player_id, name, seen_gen=gen, kept_gen=gen, drawn_gen=gen)
            self._attribute_draft(player_id, name, move, gen)
            if name in self.dealt_preludes.get(player_id, ()):
                self.ledger.force(player_id, name, draw_type=DrawType.STARTING_HAND)

    def _record_buys(self, move: Move, gen: int, phrases: List[str]):
        for phrase in card_phrases(phrases, 'buy'):
            player_id = self._subject_id(phrase)
            if player_id is None:
                continue
            for name in phrase.cards:
                if not self._is_card(name):
                    continue
                self.ledger.mark(player_id, name, seen_gen=gen, bought_gen=gen, kept_gen=gen)
                self._attribute_draft(player_id, name, move, gen)

    def _attribute_draft(self, player_id: int, name: str, move: Move, gen: int):
        """Credit a buy/keep to a same-generation draft offer shortly before it"""
        record = self.ledger.get(player_id, name)
        if record.drafted_gen is not None or record.draw_type == DrawType.STARTING_HAND:
            return
        if move.move_number is None:
            return

        for move_number, draft_gen, _ in reversed(self.draft_events.get(name, [])):
            if move_number is None or draft_gen != gen:
                continue
            if 0 <= move.move_number - move_number <= DRAFT_WINDOW_MOVES:
                self.ledger.mark(player_id, name, drafted_gen=draft_gen, drawn_gen=draft_gen, draw_type=DrawType.DRAFT)
                logger.debug(f"Move {move.move_number}: {name} attributed to draft at move {move_number}")
                return

    def _record_plays(self, move: Move, gen: int, phrases: List[str]):
        actor_id = move.actor_id
        if actor_id is None:
            return

        played = move.card_played or played_card_in(phrases)

        if actor_id != self.perspective_id:
            if self._is_card(played):
                self.ledger.mark(actor_id, played, played_gen=gen)
            return

        if self._is_card(played):
            self.ledger.mark(actor_id, played, seen_gen=gen, played_gen=gen)

        # Reveals: a revealed card with the wanted tag goes to hand
        cause = played or activated_card_in(phrases)
        draw_type = DrawType.PLAY_CARD if played else DrawType.REVEAL
        for phrase in phrases:
            match = REVEAL_PATTERN.search(phrase)
            if not match:
                continue
            revealed = match.group('card').strip()
            # "reveals 1 card" names no card
            if not self._is_card(revealed) or revealed[:1].isdigit():
                continue
            rest = match.group('rest') or ""
            if REVEAL_TAG_HIT_PATTERN.search(rest):
                self.ledger.mark(
                    actor_id, revealed,
                    seen_gen=gen, drawn_gen=gen, draw_type=draw_type, draw_reason=cause
                )
            else:
                self.ledger.mark(actor_id, revealed, seen_gen=gen)

    # ---- draw events ----

    def _record_draws(self, index: int, move: Move, gen: int, previous_gen: Optional[int], phrases: List[str]):
        """Group the move's draw phrases per player, one draw event each"""
        draws: Dict[int, Dict[str, object]] = {}
        for phrase in card_phrases(phrases, 'draw'):
            player_id = self._subject_id(phrase)
            if player_id is None:
                continue
            entry = draws.setdefault(player_id, {'names': [], 'count': None})
            for name in phrase.cards:
                if self._is_card(name) and name not in entry['names']:
                    entry['names'].append(name)
            if phrase.count is not None:
                entry['count'] = (entry['count'] or 0) + phrase.count

        for player_id, entry in draws.items():
            context = DrawContext(
                index=index,
                move=move,
                player_id=player_id,
                names=entry['names'],
                declared_count=entry['count'],
                generation=gen,
                previous_generation=previous_gen,
                draw_event_number=self.draw_event_counter[player_id] + 1,
            )
            self._classify_draw(context)
            self._finish_draw_event(player_id, context.draw_event_number)
            if context.names:
                self._resolve_draw_session(context)

    def _classify_draw(self, context: DrawContext):
        for name in context.names:
            result = None
            for classifier in self.draw_classifiers:
                result = classifier(context)
                if result is not None:
                    break

            if result is None:
                self.ledger.mark(context.player_id, name, seen_gen=context.generation, drawn_gen=context.generation)
                logger.debug(f"Move {context.move.move_number}: no draw cause found for {name}")
                continue

            draw_type, reason = result
            self.ledger.mark(
                context.player_id, name,
                seen_gen=context.generation, drawn_gen=context.generation,
                draw_type=draw_type, draw_reason=reason
            )

    def _classify_draft(self, context: DrawContext) -> Optional[Classification]:
        move = context.move
        if move.action_type in DRAFT_ACTION_TYPES or RESEARCH_DRAFT_PHRASE in move.description:
            return DrawType.DRAFT, None
        if len(context.names) == RESEARCH_DRAW_SIZE:
            return DrawType.DRAFT, None
        if context.declared_count == RESEARCH_DRAW_SIZE:
            passed = move.action_type == 'pass' or move.has_phrase(PASS_PHRASE)
            new_generation = new_generation_in(move.description) is not None
            generation_increased = (
                context.previous_generation is not None and context.generation > context.previous_generation
            )
            if passed or new_generation or generation_increased:
                return DrawType.DRAFT, None
        return None

    def _classify_effect(self, context: DrawContext) -> Optional[Classification]:
        for effect in self.pending_effects.get(context.player_id, []):
            if effect.ready and effect.remaining > 0 and effect.target_draw_event == context.draw_event_number:
                effect.consume()
                logger.debug(f"Move {context.move.move_number}: draw credited to {effect.reason}")
                return DrawType.EFFECT, effect.reason
        return None

    def _classify_inferred(self, context: DrawContext) -> Optional[Classification]:
        if not context.inference_done:
            context.inferred = self._infer_draw_cause(context)
            context.inference_done = True
        return context.inferred

    def _infer_draw_cause(self, context: DrawContext) -> Optional[Classification]:
        """Look at this move and the preceding moves by the same player for an activation, play or tile"""
        candidates = [context.move]
        for earlier in reversed(self.replay.moves[:context.index]):
            if len(candidates) > INFERENCE_LOOKBACK:
                break
            if earlier.actor_id == context.player_id:
                candidates.append(earlier)

        for candidate in candidates:
            phrases = candidate.phrases

            activated = activated_card_in(phrases)
            if activated:
                return DrawType.ACTIVATION, activated

            played = candidate.card_played or played_card_in(phrases)
            if played:
                return DrawType.PLAY_CARD, played

            for placement in tile_placements_in(phrases):
                location = placement['location']
                if normalize_location(location).is_hex:
                    return DrawType.TILE, location

        return None

    def _finish_draw_event(self, player_id: int, draw_event_number: int):
        """Drop used-up effects and advance the player's draw-event counter"""
        queue = self.pending_effects.get(player_id)
        if queue:
            kept = []
            for effect in queue:
                if effect.state is EffectState.CONSUMED:
                    continue
                if effect.ready and effect.target_draw_event <= draw_event_number:
                    logger.debug(f"Player {player_id}: effect {effect.reason} found no draw at event {draw_event_number}")
                    continue
                kept.append(effect)
            queue[:] = kept
        self.draw_event_counter[player_id] += 1

    def _resolve_draw_session(self, context: DrawContext):
        """Find keep/buy phrases for drawn cards in the following moves of the same player"""
        moves = self.replay.moves
        next_index = context.index + 1
        if next_index < len(moves) and moves[next_index].has_phrase(SKIPS_REST_PHRASE):
            logger.debug(f"Move {context.move.move_number}: draw abandoned, rest of actions skipped")
            return

        candidates = [context.move]
        for later in moves[next_index:]:
            if len(candidates) > DRAW_RESOLUTION_WINDOW:
                break
            if later.actor_id == context.player_id:
                candidates.append(later)

        resolved = False
        for candidate in candidates:
            resolution_gen = candidate.generation if candidate.generation is not None else context.generation
            for phrase in candidate.phrases:
                parsed = parse_card_phrase(phrase)
                if parsed is None or parsed.verb not in ('keep', 'buy'):
                    continue
                if self._subject_id(parsed) != context.player_id:
                    continue
                for name in parsed.cards:
                    if name not in context.names:
                        continue
                    if parsed.verb == 'buy':
                        self.ledger.mark(context.player_id, name, kept_gen=resolution_gen, bought_gen=resolution_gen)
                    else:
                        self.ledger.mark(context.player_id, name, kept_gen=resolution_gen)
                    resolved = True

        if not resolved:
            # No explicit keep/buy: everything drawn counts as kept
            for name in context.names:
                self.ledger.mark(context.player_id, name, kept_gen=context.generation)

    # ---- pending effects ----

    def _update_pending_effects(self, move: Move, phrases: List[str]):
        actor_id = move.actor_id
        if actor_id is None:
            return

        if move.action_type == 'play_card' or played_card_in(phrases):
            for triggered in triggered_effects_in(phrases):
                effect_name = lookup_draw_effect(triggered)
                if effect_name is None:
                    continue
                settings = DRAW_EFFECTS[effect_name]
                effect = PendingEffect(reason=effect_name, signal=settings['signal'], remaining=settings['cards'])
                if not effect.requires_confirmation:
                    effect.arm(self.draw_event_counter[actor_id] + 1)
                self.pending_effects[actor_id].append(effect)
                logger.debug(f"Move {move.move_number}: player {actor_id} queued effect {effect_name}")

        awaiting = [e for e in self.pending_effects.get(actor_id, []) if e.state is EffectState.AWAITING_SIGNAL]
        if not awaiting:
            return

        removal_sources = removal_sources_in(phrases)
        discards = [
            phrase for phrase in card_phrases(phrases, 'discard')
            if self._subject_id(phrase) == actor_id
        ]
        for effect in awaiting:
            if effect.signal == 'removes' and effect.reason in removal_sources:
                removal_sources.remove(effect.reason)
            elif effect.signal == 'discard' and discards:
                discards.pop(0)
            else:
                continue
            effect.arm(self.draw_event_counter[actor_id] + 1)
            logger.debug(f"Move {move.move_number}: effect {effect.reason} confirmed for player {actor_id}")

    # ---- finalization ----

    def _join_final_vp(self):
        final_state = self.replay.final_state
        if final_state is not None:
            for player_key in final_state.player_vp:
                player_id = parse_player_id(player_key)
                if player_id is None:
                    logger.warning(f"Table {self.replay.table_id}: Unable to parse PlayerVp key '{player_key}' to int, skipping card VP.")
                    continue
                for card, vp in final_state.card_vp(player_key).items():
                    if self._is_card(card):
                        self.ledger.mark(player_id, card, vp_scored=vp)

        for record in self.ledger.records():
            if record.played_gen is not None and record.vp_scored is None:
                record.vp_scored = 0

    def _apply_invariants(self):
        """Played implies kept and drawn; kept implies drawn"""
        for record in self.ledger.records():
            if record.played_gen is not None:
                if record.kept_gen is None:
                    record.kept_gen = record.played_gen
                if record.drawn_gen is None:
                    record.drawn_gen = record.kept_gen
            if record.kept_gen is not None and record.drawn_gen is None:
                record.drawn_gen = record.kept_gen
            if record.drawn_gen is not None and record.seen_gen is None:
                record.seen_gen = record.drawn_gen

