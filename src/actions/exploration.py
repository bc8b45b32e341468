"""
Exploration verbs: examine, read, look, smell, climb, move and goto.
"""

from __future__ import annotations

import logging

from src.actions.common import (
    ActionContext,
    TargetStatus,
    default_effects,
    fail_line,
    join_names,
    live,
    locate_target,
    run_handler,
    with_focus,
)
from src.engine.focus import focus_target_for
from src.engine.gating import check_for_gated_content
from src.engine.handlers import (
    HandlerAvailability,
    classify_handler,
    get_effective_description,
    get_fallback_message,
)
from src.engine.matcher import NEARBY_BONUS, find_npc, matches_name, normalize_name
from src.engine.outcomes import narrator_message, system_message
from src.engine.state_manager import get_children
from src.engine.visibility import (
    get_transition_narration,
    get_visible_entities,
    is_container_accessible,
    is_in_current_location,
    is_revealed,
)
from src.models.cartridge import NPC, GameObject, Item, Location, Portal
from src.models.common import EntityKind, FocusType, MessageType, Verb
from src.models.effects import (
    Effect,
    MoveToLocation,
    SetEntityState,
    SetFlag,
    SetFocus,
    ShowMessage,
)
from src.models.runtime import EntityRuntimeState

logger = logging.getLogger(__name__)

ALREADY_AT = [
    "You're already at the {name}.",
    "You're standing right by the {name}.",
    "You're already next to the {name}.",
]


def examined_flag(entity_id: str) -> str:
    return f"examined_{entity_id}"


def _visible_contents(ctx: ActionContext, container_id: str) -> list[str]:
    if not is_container_accessible(ctx.state, ctx.game, container_id):
        return []
    names = []
    for child_id in get_children(ctx.state, ctx.game, container_id):
        child = ctx.entity(child_id)
        if child is not None and is_revealed(ctx.state, ctx.game, child_id):
            names.append(child.name)
    return names


# =============================================================================
# Examine / Read
# =============================================================================


def _examine_npc(ctx: ActionContext, npc: NPC) -> list[Effect]:
    message = ShowMessage(
        content=npc.description or f"It's {npc.name}.",
        message_type=MessageType.IMAGE if npc.image else MessageType.TEXT,
        image_id=npc.id if npc.image else None,
        image_entity_type=EntityKind.NPC if npc.image else None,
    )
    return with_focus(ctx, [message], Verb.EXAMINE, npc, True)


async def handle_examine(
    ctx: ActionContext, target: str, target2: str | None = None
) -> list[Effect]:
    """
    Look closely at something.

    Once an entity has been examined its "examined" fallback line, when it
    has one, replaces the handler and description on later looks.
    """
    lookup = await locate_target(ctx, Verb.EXAMINE, target)
    if not lookup.found:
        npc_id = None
        if lookup.status in (TargetStatus.NOT_FOUND, TargetStatus.GATED):
            npc_id = find_npc(target, ctx.state, ctx.game)
        if npc_id is not None:
            return _examine_npc(ctx, ctx.game.npcs[npc_id])
        return [lookup.message]

    entity = ctx.entity(lookup.entity_id)
    flag = examined_flag(entity.id)
    mark: list[Effect] = [] if ctx.state.has_flag(flag) else [SetFlag(flag=flag)]

    again = entity.fallback_messages.get("examined") if ctx.state.has_flag(flag) else None
    if again:
        return with_focus(ctx, default_effects(ctx, entity, again), Verb.EXAMINE, entity, True)

    resolution = classify_handler(entity, Verb.EXAMINE, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, [*mark, *effects], Verb.EXAMINE, entity, succeeded)

    description = get_effective_description(entity, ctx.state, ctx.game)
    if not description:
        description = f"It's a {entity.name}. Nothing remarkable about it."
    if isinstance(entity, GameObject):
        contents = _visible_contents(ctx, entity.id)
        if contents:
            description += f" Inside you see {join_names(contents)}."
    effects = default_effects(ctx, entity, description, mark)
    return with_focus(ctx, effects, Verb.EXAMINE, entity, True)


async def handle_read(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    """
    Read something.

    Excerpts are shown in order, one per reading; the last one repeats.
    """
    lookup = await locate_target(ctx, Verb.READ, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    read_count = live(ctx, entity.id).read_count or 0
    count = SetEntityState(entity_id=entity.id, patch=EntityRuntimeState(read_count=read_count + 1))

    if entity.excerpts:
        excerpt = entity.excerpts[min(read_count, len(entity.excerpts) - 1)]
        effects = default_effects(ctx, entity, excerpt, [count])
        return with_focus(ctx, effects, Verb.READ, entity, True)

    resolution = classify_handler(entity, Verb.READ, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        if succeeded:
            effects.insert(0, count)
        return with_focus(ctx, effects, Verb.READ, entity, succeeded)

    if resolution.availability == HandlerAvailability.NOT_CAPABLE:
        return [
            narrator_message(fail_line(entity) or f"There's nothing to read on the {entity.name}.")
        ]

    description = get_effective_description(entity, ctx.state, ctx.game)
    effects = default_effects(ctx, entity, description or f"You read the {entity.name}.", [count])
    return with_focus(ctx, effects, Verb.READ, entity, True)


# =============================================================================
# Look
# =============================================================================


def _open_portals(ctx: ActionContext) -> list[Portal]:
    return [
        portal
        for portal in ctx.game.portals.values()
        if portal.from_location_id == ctx.state.current_location_id
        and (portal.reveal_flag is None or ctx.state.has_flag(portal.reveal_flag))
    ]


def describe_scene(ctx: ActionContext, location: Location) -> ShowMessage:
    """The location's description followed by what is in plain sight."""
    visible = get_visible_entities(ctx.state, ctx.game)
    top_level = [*location.objects, *location.items]
    names = []
    for entity_id in [*visible.objects, *visible.items]:
        entity = ctx.entity(entity_id)
        if entity_id in top_level and entity is not None:
            names.append(entity.name)

    parts = [location.scene_description or f"You are in {location.name}."]
    if names:
        parts.append(f"You see {join_names(names)}.")
    npc_names = [ctx.game.npcs[n].name for n in visible.npcs]
    if npc_names:
        parts.append(f"{join_names(npc_names)} {'is' if len(npc_names) == 1 else 'are'} here.")
    exits = [p.name for p in _open_portals(ctx)]
    if exits:
        parts.append(f"Exits: {join_names(exits)}.")

    content = "\n\n".join(parts)
    if location.scene_image is not None:
        return ShowMessage(
            content=content,
            message_type=location.scene_image.media_type,
            media=location.scene_image,
        )
    return ShowMessage(content=content)


async def handle_look(ctx: ActionContext, target: str = "", target2: str | None = None) -> list[Effect]:
    """Describe the scene, or examine a named target."""
    if normalize_name(target):
        return await handle_examine(ctx, target, target2)
    location = ctx.game.locations.get(ctx.state.current_location_id)
    if location is None:
        logger.error("Player is in unknown location %s", ctx.state.current_location_id)
        return [narrator_message(ctx.messages.generic_failure)]
    return [describe_scene(ctx, location)]


# =============================================================================
# Smell / Climb / Move
# =============================================================================


async def handle_smell(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    lookup = await locate_target(ctx, Verb.SMELL, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    resolution = classify_handler(entity, Verb.SMELL, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, effects, Verb.SMELL, entity, succeeded)
    return [await ctx.narrate("smell_nothing", {"object_name": entity.name})]


async def handle_climb(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    """
    Climb onto or into something.

    Objects with an inside flag are entered and left by climbing; while the
    flag is set everything inside them is within reach.
    """
    lookup = await locate_target(ctx, Verb.CLIMB, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    resolution = classify_handler(entity, Verb.CLIMB, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, effects, Verb.CLIMB, entity, succeeded)

    if resolution.availability == HandlerAvailability.NOT_CAPABLE or isinstance(entity, Item):
        line = fail_line(entity)
        if line:
            return [narrator_message(line)]
        return [await ctx.narrate("cant_climb", {"object_name": entity.name})]

    if entity.inside_flag:
        if ctx.state.has_flag(entity.inside_flag):
            effects = default_effects(
                ctx,
                entity,
                f"You climb back out of the {entity.name}.",
                [SetFlag(flag=entity.inside_flag, value=False)],
            )
        else:
            effects = default_effects(
                ctx,
                entity,
                f"You climb into the {entity.name}.",
                [SetFlag(flag=entity.inside_flag)],
            )
        return with_focus(ctx, effects, Verb.CLIMB, entity, True)

    effects = default_effects(
        ctx, entity, f"You climb up the {entity.name}. Nothing much to see from up here."
    )
    return with_focus(ctx, effects, Verb.CLIMB, entity, True)


async def handle_move(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    lookup = await locate_target(ctx, Verb.MOVE, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    resolution = classify_handler(entity, Verb.MOVE, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, effects, Verb.MOVE, entity, succeeded)

    if resolution.availability == HandlerAvailability.NOT_CAPABLE:
        return [narrator_message(get_fallback_message(entity, "not_movable", ctx.game))]

    if live(ctx, entity.id).is_moved:
        return [narrator_message(f"You've already moved the {entity.name}.")]
    effects = default_effects(
        ctx,
        entity,
        f"You move the {entity.name} around, but find nothing of interest.",
        [SetEntityState(entity_id=entity.id, patch=EntityRuntimeState(is_moved=True))],
    )
    return with_focus(ctx, effects, Verb.MOVE, entity, True)


# =============================================================================
# Goto
# =============================================================================


def _match_portal(ctx: ActionContext, normalized: str) -> Portal | None:
    best, best_score = None, 0.0
    for portal in _open_portals(ctx):
        destination = ctx.game.locations.get(portal.to_location_id)
        score = matches_name(portal, normalized).score
        if destination is not None and normalize_name(destination.name) == normalized:
            score = max(score, 100.0)
        if score > best_score:
            best, best_score = portal, score
    return best


def _global_match(ctx: ActionContext, normalized: str) -> str | None:
    """Best match anywhere in the cartridge, preferring the current location."""
    state, game = ctx.state, ctx.game
    best_id, best_score = None, 0.0
    for entity in [*game.game_objects.values(), *game.items.values(), *game.npcs.values()]:
        if not isinstance(entity, NPC) and not is_revealed(state, game, entity.id):
            continue
        result = matches_name(entity, normalized)
        if not result.matches:
            continue
        score = result.score
        if is_in_current_location(state, game, entity.id):
            score += NEARBY_BONUS
        if score > best_score:
            best_id, best_score = entity.id, score
    for item_id in state.inventory:
        item = ctx.entity(item_id)
        if item is None or item_id in game.items:
            continue
        result = matches_name(item, normalized)
        if result.matches and result.score + NEARBY_BONUS > best_score:
            best_id, best_score = item_id, result.score + NEARBY_BONUS
    return best_id


def _arrive(ctx: ActionContext, location_id: str) -> list[Effect]:
    location = ctx.game.locations[location_id]
    arrival = ShowMessage(content=f"You make your way to {location.name}.")
    return [MoveToLocation(location_id=location_id), arrival]


async def handle_goto(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    """
    Walk over to something, or through a portal to another location.

    The search covers the whole cartridge; entities in the current location
    win ties. A non-focusable target resolves to the nearest container that
    can hold focus.
    """
    normalized = normalize_name(target)
    if not normalized:
        return [system_message(ctx.messages.need_target.format(verb="go to"))]
    state, game = ctx.state, ctx.game

    here = game.locations.get(state.current_location_id)
    if here is not None and normalize_name(here.name) == normalized:
        return [narrator_message(f"You're already in {here.name}.")]
    portal = _match_portal(ctx, normalized)
    if portal is not None:
        return _arrive(ctx, portal.to_location_id)

    entity_id = _global_match(ctx, normalized)
    if entity_id is None:
        gated = check_for_gated_content(target, state, game)
        if gated.is_gated:
            return [narrator_message(gated.message or ctx.messages.cannot_do)]
        return [narrator_message(ctx.messages.not_found.format(target=target, verb="go to"))]

    entity = ctx.entity(entity_id)
    if entity_id in state.inventory:
        return [narrator_message(f"You're already holding the {entity.name}.")]
    if isinstance(entity, GameObject) and entity.personal:
        return [narrator_message(f"The {entity.name} is right here with you.")]

    if isinstance(entity, NPC):
        focus_id, focus_type, kind = entity.id, FocusType.NPC, EntityKind.NPC
    else:
        focus_id, focus_type, kind = (
            focus_target_for(entity_id, state, game),
            FocusType.OBJECT,
            EntityKind.OBJECT,
        )
    if focus_id is None:
        return [narrator_message(f"The {entity.name} is right in front of you.")]
    focus_entity = ctx.entity(focus_id)

    effects: list[Effect] = []
    if not is_in_current_location(state, game, entity_id):
        location_id = game.location_of(entity_id)
        route = next((p for p in _open_portals(ctx) if p.to_location_id == location_id), None)
        if route is None:
            return [narrator_message(f"You can't get to the {entity.name} from here.")]
        effects.extend(_arrive(ctx, route.to_location_id))
    elif focus_id == state.current_focus_id:
        return [narrator_message(ctx.rng.choice(ALREADY_AT).format(name=focus_entity.name))]

    transition = get_transition_narration(focus_id, kind, state, game, ctx.rng)
    if transition is None:
        transition = f"You turn your attention to the {focus_entity.name}."
    logger.debug("goto %s resolved to focus %s", entity_id, focus_id)
    effects.append(SetFocus(focus_id=focus_id, focus_type=focus_type, transition_message=transition))
    return effects
