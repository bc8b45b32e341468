"""
Name and entity matching for the noir engine.

Scores a player's target phrase against entity names, alternate names and
ids, then picks the best candidate from the part of the world a command is
allowed to search.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, Field

from src.engine.state_manager import get_descendants, get_entity
from src.engine.visibility import get_visible_entities, is_in_current_location
from src.models.cartridge import NPC, Entity, Game, GameObject
from src.models.state import PlayerState

ARTICLES = ("a", "an", "the")
_QUOTES = "\"'“”‘’"

# Base scores, highest precedence first
SCORE_RAW_ID = 120
SCORE_EXACT_NAME = 100
SCORE_NAME_SUBSTRING = 50
SCORE_NAME_IN_INPUT = 45
SCORE_ALT_EXACT = 40
SCORE_ALT_PARTIAL = 30
SCORE_ID_EXACT = 25
SCORE_ID_PARTIAL = 15

FOCUS_BONUS = 2000
NEARBY_BONUS = 1000

_ID_PREFIX = re.compile(r"^(obj|item|npc|loc)_")


def normalize_name(name: str | None) -> str:
    """Lowercase, strip quotes and leading articles, collapse whitespace."""
    if not name:
        return ""
    text = " ".join(name.lower().split()).strip(_QUOTES).strip()
    words = text.split()
    while len(words) > 1 and words[0] in ARTICLES:
        words = words[1:]
    return " ".join(words)


def _contains_at_word_boundary(haystack: str, needle: str) -> bool:
    return re.search(rf"\b{re.escape(needle)}\b", haystack) is not None


class NameMatch(BaseModel):
    """Whether a phrase names an entity, and how well."""

    matches: bool = False
    score: float = 0.0


class MatchCategory(str, Enum):
    """Where a match was found."""

    INVENTORY = "inventory"
    VISIBLE_ITEM = "visible-item"
    OBJECT = "object"


class MatchOptions(BaseModel):
    """Which parts of the world a lookup may search."""

    search_inventory: bool = True
    search_visible_items: bool = True
    search_objects: bool = True
    require_focus: bool = False


class BestMatch(BaseModel):
    """The winning candidate of a lookup."""

    id: str
    category: MatchCategory
    score: float
    in_current_location: bool = Field(description="In the player's location or inventory")


def matches_name(entity: Entity, normalized_input: str) -> NameMatch:
    """
    Score a normalized phrase against one entity.

    Precedence: raw id, exact name, name substring, name inside the phrase,
    alternate names, then the id with its prefix stripped.
    """
    if not normalized_input:
        return NameMatch()

    name = normalize_name(entity.name)
    if normalized_input == entity.id.lower():
        return NameMatch(matches=True, score=SCORE_RAW_ID)
    if normalized_input == name:
        return NameMatch(matches=True, score=SCORE_EXACT_NAME)
    if (
        len(normalized_input) >= 4
        and len(name) >= 4
        and _contains_at_word_boundary(name, normalized_input)
    ):
        return NameMatch(matches=True, score=SCORE_NAME_SUBSTRING + 10 / len(name))
    if len(name) >= 3 and _contains_at_word_boundary(normalized_input, name):
        return NameMatch(matches=True, score=SCORE_NAME_IN_INPUT + 10 / len(normalized_input))

    best = 0.0
    for alternate in entity.alternate_names:
        alt = normalize_name(alternate)
        if not alt:
            continue
        if alt == normalized_input:
            best = max(best, SCORE_ALT_EXACT)
        elif normalized_input in alt.split() or alt in normalized_input.split():
            best = max(best, SCORE_ALT_PARTIAL)
        elif len(normalized_input) >= 4 and _contains_at_word_boundary(alt, normalized_input):
            best = max(best, SCORE_ALT_PARTIAL)
    if best:
        return NameMatch(matches=True, score=best)

    bare_id = _ID_PREFIX.sub("", entity.id.lower()).replace("_", " ")
    if bare_id == normalized_input:
        return NameMatch(matches=True, score=SCORE_ID_EXACT)
    if len(normalized_input) >= 3 and normalized_input in bare_id:
        return NameMatch(matches=True, score=SCORE_ID_PARTIAL)
    return NameMatch()


def _personal_objects(game: Game) -> list[str]:
    return [obj.id for obj in game.game_objects.values() if obj.personal]


def _candidates(
    state: PlayerState, game: Game, options: MatchOptions
) -> list[tuple[str, MatchCategory]]:
    """Candidates in enumeration order: inventory, location items, location objects."""
    candidates: list[tuple[str, MatchCategory]] = []
    visible = get_visible_entities(state, game)
    if options.search_inventory:
        candidates.extend((item_id, MatchCategory.INVENTORY) for item_id in state.inventory)
    if options.search_visible_items:
        candidates.extend((item_id, MatchCategory.VISIBLE_ITEM) for item_id in visible.items)
    if options.search_objects:
        object_ids = [*visible.objects]
        object_ids.extend(o for o in _personal_objects(game) if o not in object_ids)
        candidates.extend((obj_id, MatchCategory.OBJECT) for obj_id in object_ids)

    if options.require_focus and state.current_focus_id:
        allowed = {state.current_focus_id, *get_descendants(state, game, state.current_focus_id)}
        candidates = [c for c in candidates if c[0] in allowed]
    return candidates


def find_best_match(
    name: str,
    state: PlayerState,
    game: Game,
    options: MatchOptions | None = None,
) -> BestMatch | None:
    """
    Find the entity a phrase most likely refers to.

    Args:
        name: Raw or normalized target phrase
        state: Current player state
        game: The cartridge
        options: Which parts of the world to search

    Returns:
        The best match, or None when nothing matches
    """
    options = options or MatchOptions()
    normalized = normalize_name(name)
    if not normalized:
        return None

    focus_set: set[str] = set()
    if state.current_focus_id:
        focus_set = {
            state.current_focus_id,
            *get_descendants(state, game, state.current_focus_id),
        }

    best: BestMatch | None = None
    for entity_id, category in _candidates(state, game, options):
        entity = get_entity(state, game, entity_id)
        if entity is None or isinstance(entity, NPC):
            continue
        result = matches_name(entity, normalized)
        if not result.matches:
            continue

        nearby = category == MatchCategory.INVENTORY or is_in_current_location(
            state, game, entity_id
        )
        score = result.score
        if entity_id in focus_set:
            score += FOCUS_BONUS
        if nearby or (isinstance(entity, GameObject) and entity.personal):
            score += NEARBY_BONUS

        # Strictly greater keeps the earliest candidate on ties
        if best is None or score > best.score:
            best = BestMatch(
                id=entity_id, category=category, score=score, in_current_location=nearby
            )
    return best


def find_npc(name: str, state: PlayerState, game: Game) -> str | None:
    """Best matching NPC present in the current location."""
    normalized = normalize_name(name)
    location = game.locations.get(state.current_location_id)
    if location is None or not normalized:
        return None
    best_id, best_score = None, 0.0
    for npc_id in location.npcs:
        npc = game.npcs.get(npc_id)
        if npc is None:
            continue
        result = matches_name(npc, normalized)
        if result.matches and result.score > best_score:
            best_id, best_score = npc_id, result.score
    return best_id
