"""
Gated content detection for the noir engine.

When a lookup finds nothing, the player may have named something that
exists but has not been revealed yet. That deserves a different answer
than naming something that is not in the story at all.
"""

from __future__ import annotations

from pydantic import BaseModel

from src.engine.matcher import ARTICLES, normalize_name
from src.engine.visibility import is_revealed
from src.models.cartridge import Game, GameObject, Item
from src.models.common import Verb
from src.models.state import PlayerState

_VERB_WORDS = {verb.value for verb in Verb} | {
    "get",
    "grab",
    "pick",
    "up",
    "look",
    "at",
    "check",
    "inspect",
    "go",
    "to",
    "walk",
}


class GatedContentResult(BaseModel):
    is_gated: bool = False
    entity_id: str | None = None
    message: str | None = None


def _variants(target_name: str) -> list[str]:
    """Name forms worth trying: as given, singular/plural, and the last word."""
    words = normalize_name(target_name).split()
    while words and (words[0] in _VERB_WORDS or words[0] in ARTICLES):
        words = words[1:]
    if not words:
        return []
    phrase = " ".join(words)
    variants = [phrase]
    if phrase.endswith("s"):
        variants.append(phrase[:-1])
    else:
        variants.append(phrase + "s")
    if len(words) > 1:
        variants.append(words[-1])
    return variants


def _names(entity: GameObject | Item) -> set[str]:
    return {normalize_name(entity.name), *(normalize_name(a) for a in entity.alternate_names)}


def check_for_gated_content(target_name: str, state: PlayerState, game: Game) -> GatedContentResult:
    """
    Look for an unrevealed entity the phrase names exactly.

    Entities in the current location are checked before the rest of the
    cartridge.
    """
    variants = _variants(target_name)
    if not variants:
        return GatedContentResult()

    candidates: list[GameObject | Item] = [*game.game_objects.values(), *game.items.values()]
    candidates.sort(key=lambda e: game.location_of(e.id) != state.current_location_id)

    for variant in variants:
        for entity in candidates:
            if variant not in _names(entity) or is_revealed(state, game, entity.id):
                continue
            message = entity.gated_message or game.system_messages.gated.format(
                name=f"the {entity.name}"
            )
            return GatedContentResult(is_gated=True, entity_id=entity.id, message=message)
    return GatedContentResult()
