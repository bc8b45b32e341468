"""
Item verbs: take, drop, combine, inventory and use.
"""

from __future__ import annotations

import logging

from src.actions.common import (
    ActionContext,
    TargetStatus,
    default_effects,
    fail_line,
    locate_held,
    locate_target,
    run_handler,
    with_focus,
)
from src.engine.handlers import HandlerAvailability, classify_handler, select_item_handler
from src.engine.matcher import MatchOptions, normalize_name
from src.engine.outcomes import narrator_message, system_message
from src.models.cartridge import GameObject, Item
from src.models.common import INVENTORY_ID, Verb
from src.models.effects import AddToContainer, Effect, RemoveItem

logger = logging.getLogger(__name__)

TAKE_BLOCKED = "You see the {name}, but can't seem to pick it up."


# =============================================================================
# Take / Drop
# =============================================================================


def _moves_to_inventory(effects: list[Effect], item_id: str) -> bool:
    return any(
        isinstance(e, AddToContainer) and e.entity_id == item_id and e.container_id == INVENTORY_ID
        for e in effects
    )


def _moves_out_of_inventory(effects: list[Effect], item_id: str) -> bool:
    for e in effects:
        if isinstance(e, RemoveItem) and e.item_id == item_id:
            return True
        if isinstance(e, AddToContainer) and e.entity_id == item_id and e.container_id != INVENTORY_ID:
            return True
    return False


def _held_by_name(ctx: ActionContext, normalized: str) -> Item | None:
    """A carried item the phrase names exactly: id, name or alternate name."""
    for item_id in ctx.state.inventory:
        item = ctx.entity(item_id)
        if item is None:
            continue
        names = {item.id.lower(), normalize_name(item.name)}
        names.update(normalize_name(a) for a in item.alternate_names)
        if normalized in names:
            return item
    return None


async def handle_take(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    """
    Pick something up.

    Searches what is visible in the location, never the inventory. Items
    shut inside a locked or closed container are reported as blocked. Only
    when nothing in the room answers to the name is the inventory checked,
    and then only for an exact name.
    """
    lookup = await locate_target(
        ctx,
        Verb.TAKE,
        target,
        MatchOptions(search_inventory=False),
        blocked_message=TAKE_BLOCKED,
    )
    if lookup.status in (TargetStatus.NOT_FOUND, TargetStatus.GATED):
        held = _held_by_name(ctx, normalize_name(target))
        if held is not None:
            return [narrator_message(f"You already have the {held.name}.")]
    if not lookup.found:
        return [lookup.message]

    entity = ctx.entity(lookup.entity_id)
    resolution = classify_handler(entity, Verb.TAKE, ctx.state, ctx.game)

    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        if succeeded and isinstance(entity, Item) and not _moves_to_inventory(effects, entity.id):
            effects.insert(0, AddToContainer(entity_id=entity.id, container_id=INVENTORY_ID))
        return with_focus(ctx, effects, Verb.TAKE, entity, succeeded)

    if resolution.availability == HandlerAvailability.NOT_CAPABLE:
        line = fail_line(entity)
        if line:
            return [narrator_message(line)]
        return [await ctx.narrate("cant_take", {"item_name": entity.name})]

    logger.debug("Default take of %s", entity.id)
    return default_effects(
        ctx,
        entity,
        f"You take the {entity.name}.",
        [AddToContainer(entity_id=entity.id, container_id=INVENTORY_ID)],
    )


async def handle_drop(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    """
    Put down a carried item.

    The item goes to the location's zone storage so it can be picked up
    again; a location without one swallows it. A successful handler that
    does not move the item itself gets the same move.
    """
    lookup = locate_held(ctx, Verb.DROP, target)
    if not lookup.found:
        return [lookup.message]

    item = ctx.entity(lookup.entity_id)
    resolution = classify_handler(item, Verb.DROP, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, item, resolution.handler)
        if succeeded and not _moves_out_of_inventory(effects, item.id):
            effects.insert(0, _drop_move(ctx, item))
        return with_focus(ctx, effects, Verb.DROP, item, succeeded)

    return [_drop_move(ctx, item), narrator_message(f"You drop the {item.name}.")]


def _drop_move(ctx: ActionContext, item: Item) -> Effect:
    location = ctx.game.locations.get(ctx.state.current_location_id)
    if location is not None and location.zone_storage_id:
        return AddToContainer(entity_id=item.id, container_id=location.zone_storage_id)
    return RemoveItem(item_id=item.id)


# =============================================================================
# Combine
# =============================================================================


async def handle_combine(
    ctx: ActionContext, target: str, target2: str | None = None
) -> list[Effect]:
    """
    Combine two carried items.

    The first item's entry for the second wins over the second item's entry
    for the first.
    """
    first = locate_held(ctx, Verb.COMBINE, target)
    if not first.found:
        return [first.message]
    item1 = ctx.entity(first.entity_id)

    if not normalize_name(target2):
        return [system_message(f"What do you want to combine the {item1.name} with?")]
    second = locate_held(ctx, Verb.COMBINE, target2)
    if not second.found:
        return [second.message]
    item2 = ctx.entity(second.entity_id)

    if item1.id == item2.id:
        return [narrator_message(f"You can't combine the {item1.name} with itself.")]

    owner, handler = item1, select_item_handler(item1.combine_handlers, item2.id, ctx.state, ctx.game)
    if handler is None:
        owner = item2
        handler = select_item_handler(item2.combine_handlers, item1.id, ctx.state, ctx.game)

    if handler is None:
        return [await ctx.narrate("cant_combine", {"item1": item1.name, "item2": item2.name})]

    logger.debug("Combining %s and %s with %s's handler", item1.id, item2.id, owner.id)
    effects, succeeded = run_handler(ctx, owner, handler)
    return with_focus(ctx, effects, Verb.COMBINE, owner, succeeded)


# =============================================================================
# Inventory / Use
# =============================================================================


async def handle_inventory(
    ctx: ActionContext, target: str = "", target2: str | None = None
) -> list[Effect]:
    if not ctx.state.inventory:
        return [narrator_message("Your inventory is empty.")]
    lines = []
    for item_id in ctx.state.inventory:
        item = ctx.entity(item_id)
        if item is None:
            logger.error("Inventory holds unknown item %s", item_id)
            continue
        lines.append(f"- {item.name}")
    return [narrator_message("You are carrying:\n" + "\n".join(lines))]


async def handle_use(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    """
    Use an item on its own, or on another entity.

    For "use A on B" the object's handler for the item is tried first, then
    the item's own handler for the object.
    """
    if normalize_name(target2):
        return await _use_on(ctx, target, target2)

    lookup = await locate_target(ctx, Verb.USE, target)
    if not lookup.found:
        return [lookup.message]
    entity = ctx.entity(lookup.entity_id)

    resolution = classify_handler(entity, Verb.USE, ctx.state, ctx.game)
    if resolution.availability == HandlerAvailability.HANDLED:
        effects, succeeded = run_handler(ctx, entity, resolution.handler)
        return with_focus(ctx, effects, Verb.USE, entity, succeeded)
    if resolution.availability == HandlerAvailability.CAPABLE_NO_HANDLER:
        return [narrator_message(f"You use the {entity.name}, but nothing happens.")]

    line = fail_line(entity)
    if line:
        return [narrator_message(line)]
    return [await ctx.narrate("cant_use", {"item_name": entity.name})]


async def _use_on(ctx: ActionContext, target: str, target2: str) -> list[Effect]:
    held = locate_held(ctx, Verb.USE, target)
    if not held.found:
        return [held.message]
    item = ctx.entity(held.entity_id)

    lookup = await locate_target(ctx, Verb.USE, target2)
    if not lookup.found:
        return [lookup.message]
    other = ctx.entity(lookup.entity_id)

    handler = None
    owner = other
    if isinstance(other, GameObject):
        handler = select_item_handler(
            other.item_handlers.get(Verb.USE, []), item.id, ctx.state, ctx.game
        )
    if handler is None:
        owner = item
        handler = select_item_handler(item.use_handlers, other.id, ctx.state, ctx.game)

    if handler is None:
        return [
            await ctx.narrate("cant_use", {"item_name": item.name, "target_name": other.name})
        ]

    effects, succeeded = run_handler(ctx, owner, handler)
    return with_focus(ctx, effects, Verb.USE, other, succeeded)
