"""
Container and lock verbs: open, close, unlock, break, search and password.
"""

from __future__ import annotations

import logging
import re

from src.actions.common import (
    ActionContext,
    default_effects,
    fail_line,
    join_names,
    live,
    locate_held,
    locate_target,
    run_handler,
    with_focus,
)
from src.engine.handlers import HandlerAvailability, classify_handler, select_item_handler
from src.engine.matcher import ARTICLES, normalize_name
from src.engine.outcomes import build_effects_from_outcome, narrator_message, system_message
from src.engine.state_manager import get_children
from src.engine.validator import validate
from src.engine.visibility import is_container_accessible, is_revealed
from src.models.cartridge import GameObject, Outcome
from src.models.common import EntityKind, Verb
from src.models.effects import Effect, RevealObject, SetEntityState, SetFlag
from src.models.runtime import EntityRuntimeState

logger = logging.getLogger(__name__)

PASSWORD_FILLER = {
    "password",
    "passphrase",
    "phrase",
    "code",
    "combination",
    "say",
    "type",
    "enter",
    "input",
    "try",
    "use",
    "is",
    "it",
    "into",
    "on",
    "in",
    "with",
    *ARTICLES,
}

_DIGITS = re.compile(r"\D")


def _reveal_hidden_children(ctx: ActionContext, container_id: str) -> tuple[list[Effect], list[str]]:
    """REVEAL_OBJECT effects for unrevealed children, plus their names."""
    effects: list[Effect] = []
    names: list[str] = []
    for child_id in get_children(ctx.state, ctx.game, container_id):
        if is_revealed(ctx.state, ctx.game, child_id):
            continue
        child = ctx.entity(child_id)
        if child is None:
            continue
        effects.append(RevealObject(entity_id=child_id, revealed_by=container_id))
        names.append(child.name)
    return effects, names


def _contents(ctx: ActionContext, container_id: str) -> list[str]:
    names = []
    for child_id in get_children(ctx.state, ctx.game, container_id):
        child = ctx.entity(child_id)
        if child is not None:
            names.append(child.name)
    return names


# =============================================================================
# Open / Close
# =============================================================================


async def handle_open(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    """
    Open a container.

    Without a handler an openable, unlocked container opens and everything
    inside it becomes visible.
    """
    lookup = await locate_target(ctx, Verb.OPEN, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    resolution = classify_handler(entity, Verb.OPEN, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, effects, Verb.OPEN, entity, succeeded)

    if resolution.availability == HandlerAvailability.NOT_CAPABLE:
        line = fail_line(entity)
        if line:
            return [narrator_message(line)]
        return [await ctx.narrate("cant_open", {"object_name": entity.name})]

    state = live(ctx, entity.id)
    if state.is_open:
        return [await ctx.narrate("already_open", {"object_name": entity.name})]
    if state.is_locked:
        return [await ctx.narrate("locked", {"object_name": entity.name})]

    reveals, _ = _reveal_hidden_children(ctx, entity.id)
    contents = _contents(ctx, entity.id)
    message = f"You open the {entity.name}."
    if contents:
        message += f" Inside you find {join_names(contents)}."
    else:
        message += " It's empty."
    effects = default_effects(
        ctx,
        entity,
        message,
        [SetEntityState(entity_id=entity.id, patch=EntityRuntimeState(is_open=True)), *reveals],
    )
    return with_focus(ctx, effects, Verb.OPEN, entity, True)


async def handle_close(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    lookup = await locate_target(ctx, Verb.CLOSE, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    resolution = classify_handler(entity, Verb.CLOSE, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, effects, Verb.CLOSE, entity, succeeded)

    if resolution.availability == HandlerAvailability.NOT_CAPABLE:
        return [narrator_message(fail_line(entity) or f"You can't close the {entity.name}.")]

    if not live(ctx, entity.id).is_open:
        return [await ctx.narrate("already_closed", {"object_name": entity.name})]

    effects = default_effects(
        ctx,
        entity,
        f"You close the {entity.name}.",
        [SetEntityState(entity_id=entity.id, patch=EntityRuntimeState(is_open=False))],
    )
    return with_focus(ctx, effects, Verb.CLOSE, entity, True)


# =============================================================================
# Unlock / Break
# =============================================================================


async def handle_unlock(
    ctx: ActionContext, target: str, target2: str | None = None
) -> list[Effect]:
    """Unlock an object, optionally with a carried key."""
    lookup = await locate_target(ctx, Verb.UNLOCK, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    if normalize_name(target2):
        held = locate_held(ctx, Verb.UNLOCK, target2)
        if not held.found:
            return [held.message]
        key = ctx.entity(held.entity_id)
        handler, owner = None, entity
        if isinstance(entity, GameObject):
            handler = select_item_handler(
                entity.item_handlers.get(Verb.UNLOCK, []), key.id, ctx.state, ctx.game
            )
        if handler is None:
            owner = key
            handler = select_item_handler(key.use_handlers, entity.id, ctx.state, ctx.game)
        if handler is None:
            return [narrator_message(f"The {key.name} doesn't fit the {entity.name}.")]
        effects, succeeded = run_handler(ctx, owner, handler)
        return with_focus(ctx, effects, Verb.UNLOCK, entity, succeeded)

    resolution = classify_handler(entity, Verb.UNLOCK, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, effects, Verb.UNLOCK, entity, succeeded)

    validation = validate(Verb.UNLOCK, entity.id, ctx.state, ctx.game)
    if not validation.valid:
        return [narrator_message(validation.reason or ctx.messages.cannot_do)]

    if isinstance(entity, GameObject) and entity.input is not None:
        return [narrator_message(f"The {entity.name} needs a password.")]
    return [narrator_message(f"The {entity.name} is locked. You'll need something to open it with.")]


async def handle_break(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    """
    Break something, optionally with a carried tool.

    An object that cannot be broken gets its own refusal or a narrated one;
    a breakable object without a handler hints that a tool is needed.
    """
    lookup = await locate_target(ctx, Verb.BREAK, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    if normalize_name(target2) and isinstance(entity, GameObject):
        held = locate_held(ctx, Verb.BREAK, target2)
        if not held.found:
            return [held.message]
        handler = select_item_handler(
            entity.item_handlers.get(Verb.BREAK, []), held.entity_id, ctx.state, ctx.game
        )
        if handler is not None:
            effects, succeeded = run_handler(ctx, entity, handler)
            return with_focus(ctx, effects, Verb.BREAK, entity, succeeded)

    resolution = classify_handler(entity, Verb.BREAK, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, effects, Verb.BREAK, entity, succeeded)

    if resolution.availability == HandlerAvailability.NOT_CAPABLE:
        line = fail_line(entity)
        if line:
            return [narrator_message(line)]
        return [await ctx.narrate("cant_break_object", {"object_name": entity.name})]

    if live(ctx, entity.id).is_broken:
        return [narrator_message(f"The {entity.name} is already broken.")]
    return [await ctx.narrate("break_needs_tool", {"object_name": entity.name})]


# =============================================================================
# Search
# =============================================================================


async def handle_search(
    ctx: ActionContext, target: str, target2: str | None = None
) -> list[Effect]:
    """
    Search an object.

    Without a handler, searching an accessible container reveals whatever
    was hidden in it.
    """
    lookup = await locate_target(ctx, Verb.SEARCH, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    resolution = classify_handler(entity, Verb.SEARCH, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, effects, Verb.SEARCH, entity, succeeded)

    if resolution.availability == HandlerAvailability.NOT_CAPABLE:
        return [narrator_message(fail_line(entity) or ctx.messages.cannot_do)]

    if isinstance(entity, GameObject):
        if not is_container_accessible(ctx.state, ctx.game, entity.id):
            return [narrator_message(f"You can't search inside the {entity.name} while it's shut.")]
        reveals, names = _reveal_hidden_children(ctx, entity.id)
        if reveals:
            effects = default_effects(
                ctx,
                entity,
                f"You search the {entity.name} and find {join_names(names)}.",
                reveals,
            )
            return with_focus(ctx, effects, Verb.SEARCH, entity, True)

    message = await ctx.narrate("nothing_found", {"object_name": entity.name})
    return with_focus(ctx, [message], Verb.SEARCH, entity, True)


# =============================================================================
# Password
# =============================================================================


def clean_phrase(raw: str, obj: GameObject) -> str:
    """
    Reduce a typed password to the phrase itself.

    Leading filler ("say", "the password is") and the object's own name are
    removed so "enter justice into the keypad" compares as "justice".
    """
    phrase = normalize_name(raw)
    for name in [obj.name, *obj.alternate_names]:
        normalized = normalize_name(name)
        if normalized and normalized != phrase:
            phrase = re.sub(rf"\b{re.escape(normalized)}\b", " ", phrase)
    words = phrase.split()
    while words and words[0] in PASSWORD_FILLER:
        words = words[1:]
    while words and words[-1] in PASSWORD_FILLER:
        words = words[:-1]
    return " ".join(words)


def _matches_input(raw: str, obj: GameObject) -> bool:
    puzzle = obj.input
    if puzzle.type == "digits":
        return _DIGITS.sub("", raw) == _DIGITS.sub("", puzzle.validation)
    return clean_phrase(raw, obj) == normalize_name(puzzle.validation)


async def handle_password(
    ctx: ActionContext, target: str, target2: str | None = None
) -> list[Effect]:
    """
    Submit a password to the focused object.

    Focus is required: two objects may accept the same word, and only the
    one the player is standing at should respond.
    """
    if not normalize_name(target):
        return [system_message(ctx.messages.need_target.format(verb="say"))]

    focus_id = ctx.state.current_focus_id
    obj = ctx.game.game_objects.get(focus_id) if focus_id else None
    if obj is None or obj.input is None or not obj.capabilities.inputtable:
        return [system_message(ctx.messages.need_focus)]

    if not validate(Verb.UNLOCK, obj.id, ctx.state, ctx.game).valid:
        return [narrator_message(f"The {obj.name} is already unlocked.")]

    if not _matches_input(target, obj):
        logger.debug("Wrong password for %s", obj.id)
        if obj.input.fail is not None:
            return build_effects_from_outcome(
                obj.input.fail, obj.id, EntityKind.OBJECT, ctx.game, is_fail=True
            )
        return [
            await ctx.narrate(
                "wrong_password", {"phrase": clean_phrase(target, obj), "object_name": obj.name}
            )
        ]

    reveals, names = _reveal_hidden_children(ctx, obj.id)
    unlock: list[Effect] = [
        SetEntityState(entity_id=obj.id, patch=EntityRuntimeState(is_locked=False, is_open=True)),
        *reveals,
        SetFlag(flag=f"examined_{obj.id}"),
    ]
    success = obj.input.success or Outcome(
        message=f"The {obj.name} clicks and swings open."
        + (f" Inside you find {join_names(names)}." if names else "")
    )
    outcome = success.model_copy(update={"effects": [*unlock, *success.effects]})
    effects = build_effects_from_outcome(outcome, obj.id, EntityKind.OBJECT, ctx.game)
    return with_focus(ctx, effects, Verb.PASSWORD, obj, True)
