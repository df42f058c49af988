"""
Patterns for the human-readable BGA log phrases found in move descriptions
Older replay logs carry card events only in these phrases
"""
import re
from dataclasses import dataclass, field
from typing import List, Dict, Optional

# "You draft Birds", "Alice keeps 2 card/s", "Bob draws 2 cards: Birds, Fish"
CARD_VERB_PATTERN = re.compile(
    r'^(?P<subject>You|.+?)\s+(?P<verb>drafts?|keeps?|buys?|draws?|discards?)\s+(?P<object>.+?)\.?$'
)
COUNT_ONLY_PATTERN = re.compile(r'^(?P<count>\d+)\s+cards?(?:/s)?$', re.IGNORECASE)
COUNT_WITH_NAMES_PATTERN = re.compile(r'^(?P<count>\d+)\s+cards?(?:/s)?\s*:\s*(?P<names>.+)$', re.IGNORECASE)

PLAY_CARD_PATTERN = re.compile(r'plays card\s+(?P<card>.+?)\.?$')
ACTIVATE_PATTERN = re.compile(r'activates\s+(?P<card>.+?)\.?$')
TRIGGERED_EFFECT_PATTERN = re.compile(r'triggered effect of\s+(?P<card>.+?)(?=\s*(?:$|[:,(|]))')
REMOVES_PATTERN = re.compile(r'removes\s+(?P<resource>.+?)\s+from\s+(?P<card>.+?)\.?$')
REVEAL_PATTERN = re.compile(r'reveals?\s+(?P<card>[^:]+?)\s*(?::\s*(?P<rest>.*))?$')
REVEAL_TAG_HIT_PATTERN = re.compile(r'has an? (?:Space|Plant) tag', re.IGNORECASE)
PLACE_TILE_PATTERN = re.compile(
    r'places\s+(?:tile\s+)?(?P<tile>[A-Z][\w\'-]*)(?:\s+tile)?(?:\s+(?:on|at)\b)?\s*(?P<location>.*?)\.?$'
)
NEW_GENERATION_PATTERN = re.compile(r'New generation\s+(?P<generation>\d+)', re.IGNORECASE)

SKIPS_REST_PHRASE = "skips rest of actions"
RESEARCH_DRAFT_PHRASE = "Research draft"
PASS_PHRASE = "passes"

VERB_FORMS = {
    'draft': 'draft', 'drafts': 'draft',
    'keep': 'keep', 'keeps': 'keep',
    'buy': 'buy', 'buys': 'buy',
    'draw': 'draw', 'draws': 'draw',
    'discard': 'discard', 'discards': 'discard',
}


@dataclass
class CardPhrase:
    """One "<subject> <verb> <cards>" log phrase"""
    subject: str
    verb: str  # draft, keep, buy, draw or discard
    cards: List[str] = field(default_factory=list)
    count: Optional[int] = None

    @property
    def is_you(self) -> bool:
        return self.subject == "You"


def parse_card_phrase(phrase: str) -> Optional[CardPhrase]:
    """Parse a draft/keep/buy/draw/discard phrase, or None when it is not one"""
    match = CARD_VERB_PATTERN.match(phrase.strip())
    if not match:
        return None

    subject = match.group('subject').strip()
    verb = VERB_FORMS[match.group('verb')]
    obj = match.group('object').strip()

    count_only = COUNT_ONLY_PATTERN.match(obj)
    if count_only:
        return CardPhrase(subject=subject, verb=verb, cards=[], count=int(count_only.group('count')))

    with_names = COUNT_WITH_NAMES_PATTERN.match(obj)
    if with_names:
        names = [name.strip() for name in with_names.group('names').split(',') if name.strip()]
        return CardPhrase(subject=subject, verb=verb, cards=names, count=int(with_names.group('count')))

    # Numeric-only objects like "1 card" never name a card
    if obj[:1].isdigit():
        return CardPhrase(subject=subject, verb=verb, cards=[], count=None)

    return CardPhrase(subject=subject, verb=verb, cards=[obj], count=1)


def card_phrases(phrases: List[str], verb: str) -> List[CardPhrase]:
    results = []
    for phrase in phrases:
        parsed = parse_card_phrase(phrase)
        if parsed and parsed.verb == verb:
            results.append(parsed)
    return results


def resolve_subject(subject: str, perspective_id: Optional[int], name_to_id: Dict[str, int]) -> Optional[int]:
    """Map "You" or a player name to a player id"""
    if subject == "You":
        return perspective_id
    return name_to_id.get(subject)


def played_card_in(phrases: List[str]) -> Optional[str]:
    for phrase in phrases:
        match = PLAY_CARD_PATTERN.search(phrase)
        if match:
            return match.group('card').strip()
    return None


def activated_card_in(phrases: List[str]) -> Optional[str]:
    for phrase in phrases:
        match = ACTIVATE_PATTERN.search(phrase)
        if match:
            return match.group('card').strip()
    return None


def triggered_effects_in(phrases: List[str]) -> List[str]:
    """Every "triggered effect of <Card>" occurrence, in order"""
    effects = []
    for phrase in phrases:
        for match in TRIGGERED_EFFECT_PATTERN.finditer(phrase):
            effects.append(match.group('card').strip())
    return effects


def removal_sources_in(phrases: List[str]) -> List[str]:
    """Cards named in "removes <Resource> from <Card>" phrases"""
    sources = []
    for phrase in phrases:
        match = REMOVES_PATTERN.search(phrase)
        if match:
            sources.append(match.group('card').strip())
    return sources


def tile_placements_in(phrases: List[str]) -> List[Dict[str, Optional[str]]]:
    """Tile type and location text of each "places <Tile> ..." phrase"""
    placements = []
    for phrase in phrases:
        match = PLACE_TILE_PATTERN.search(phrase)
        if match:
            location = match.group('location').strip()
            placements.append({
                'tile': match.group('tile'),
                'location': location or None,
                'phrase': phrase,
            })
    return placements


def new_generation_in(description: str) -> Optional[int]:
    match = NEW_GENERATION_PATTERN.search(description)
    return int(match.group('generation')) if match else None
