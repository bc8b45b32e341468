"""
Conversation verbs: talk, what is said during a conversation, and ending it.
"""

from __future__ import annotations

import logging

from src.actions.common import ActionContext, live, locate_target, with_focus
from src.engine.matcher import find_npc, normalize_name
from src.engine.outcomes import build_effects_from_outcome, narrator_message, system_message
from src.engine.validator import evaluate_conditions
from src.models.cartridge import NPC, Topic
from src.models.common import DialogueType, EntityKind, MessageType, Verb
from src.models.effects import (
    Effect,
    EndConversation,
    IncrementNpcInteraction,
    SetEntityState,
    SetFlag,
    ShowMessage,
    StartConversation,
)
from src.models.runtime import EntityRuntimeState

logger = logging.getLogger(__name__)

DEFAULT_PERSONA = "A local who keeps their own counsel."


def topic_flag(npc_id: str, topic_id: str) -> str:
    """Flag recording that a one-time topic has been discussed."""
    return f"discussed_{npc_id}_{topic_id}"


def npc_line(npc: NPC, content: str) -> ShowMessage:
    return ShowMessage(speaker=npc.id, content=content)


async def handle_talk(ctx: ActionContext, target: str, target2: str | None = None) -> list[Effect]:
    """
    Start a conversation with an NPC in the current location.

    Emits, in order: the conversation start, the interaction count, the NPC's
    authored start effects, a system line explaining how to leave, then the
    NPC's welcome.
    """
    if not normalize_name(target):
        return [system_message(ctx.messages.need_target.format(verb="talk to"))]

    npc_id = find_npc(target, ctx.state, ctx.game)
    if npc_id is None:
        lookup = await locate_target(ctx, Verb.TALK, target)
        if lookup.found:
            entity = ctx.entity(lookup.entity_id)
            return [narrator_message(f"The {entity.name} doesn't have much to say.")]
        return [lookup.message]

    npc = ctx.game.npcs[npc_id]
    if ctx.state.active_conversation_with == npc.id:
        return [system_message(f"You are already talking to {npc.name}.")]

    effects: list[Effect] = []
    if ctx.state.active_conversation_with:
        effects.append(EndConversation())
    effects.extend(
        [
            StartConversation(npc_id=npc.id),
            IncrementNpcInteraction(npc_id=npc.id),
            *npc.start_conversation_effects,
            system_message(
                f"You are now talking to {npc.name}. Type 'goodbye' to end the conversation."
            ),
        ]
    )
    if npc.welcome_message:
        effects.append(
            ShowMessage(
                speaker=npc.id,
                content=npc.welcome_message,
                message_type=MessageType.IMAGE if npc.image else MessageType.TEXT,
                image_id=npc.id if npc.image else None,
                image_entity_type=EntityKind.NPC if npc.image else None,
            )
        )
    logger.debug("Conversation started with %s", npc.id)
    return with_focus(ctx, effects, Verb.TALK, npc, True)


async def end_conversation(ctx: ActionContext) -> list[Effect]:
    npc_id = ctx.state.active_conversation_with
    if npc_id is None:
        return [system_message("You're not talking to anyone.")]
    npc = ctx.game.npcs.get(npc_id)
    name = npc.name if npc is not None else npc_id
    return [EndConversation(), narrator_message(f"You end your conversation with {name}.")]


# =============================================================================
# Conversation
# =============================================================================


async def handle_conversation(ctx: ActionContext, player_input: str) -> list[Effect]:
    """
    Answer what the player says to the NPC they are talking to.

    Every line counts as an interaction. Scripted NPCs answer from their
    topics; freeform NPCs improvise from their persona through the narrator.
    Once an NPC's interaction limit is passed, only its limit line is given.
    """
    npc_id = ctx.state.active_conversation_with
    npc = ctx.game.npcs.get(npc_id) if npc_id else None
    if npc is None:
        if npc_id:
            logger.error("Conversation with unknown NPC %s", npc_id)
        return [system_message("You're not talking to anyone.")]

    effects: list[Effect] = [IncrementNpcInteraction(npc_id=npc.id)]
    count = (live(ctx, npc.id).interaction_count or 0) + 1
    if npc.max_interactions is not None and count > npc.max_interactions:
        effects.append(npc_line(npc, npc.interaction_limit_response or npc.fallbacks.default))
        return effects

    if npc.dialogue_type == DialogueType.FREEFORM:
        effects.append(await _improvise(ctx, npc, player_input))
        return effects

    effects.extend(_scripted_reply(ctx, npc, player_input))
    return effects


def available_topics(ctx: ActionContext, npc: NPC) -> list[Topic]:
    """Topics whose conditions hold and that have not been used up."""
    return [
        topic
        for topic in npc.topics
        if not (topic.once and ctx.state.has_flag(topic_flag(npc.id, topic.topic_id)))
        and evaluate_conditions(topic.conditions, ctx.state, ctx.game)
    ]


def _select_topic(topics: list[Topic], player_input: str) -> Topic | None:
    text = player_input.lower()
    for topic in topics:
        if any(keyword.lower() in text for keyword in topic.keywords):
            return topic
    return None


def _scripted_reply(ctx: ActionContext, npc: NPC, player_input: str) -> list[Effect]:
    topics = available_topics(ctx, npc)
    if not topics:
        return [npc_line(npc, npc.fallbacks.no_more_help or npc.fallbacks.default)]

    topic = _select_topic(topics, player_input)
    if topic is None:
        return [npc_line(npc, npc.fallbacks.off_topic or npc.fallbacks.default)]

    state = live(ctx, npc.id)
    trust = state.trust if state.trust is not None else npc.initial_state.trust
    if trust < topic.min_trust:
        logger.debug(
            "%s holds back on %s (trust %d < %d)", npc.id, topic.topic_id, trust, topic.min_trust
        )
        return [npc_line(npc, npc.fallbacks.guarded or npc.fallbacks.default)]

    effects: list[Effect] = []
    patch: dict[str, object] = {}
    if topic.trust_change:
        patch["trust"] = max(0, min(100, trust + topic.trust_change))
    if topic.set_stage:
        patch["stage"] = topic.set_stage
    if topic.set_attitude:
        patch["attitude"] = topic.set_attitude
    if patch:
        effects.append(SetEntityState(entity_id=npc.id, patch=EntityRuntimeState(**patch)))
    if topic.once:
        effects.append(SetFlag(flag=topic_flag(npc.id, topic.topic_id)))

    response = topic.response.model_copy(update={"speaker": npc.id})
    effects.extend(build_effects_from_outcome(response, game=ctx.game))
    logger.debug("%s answers topic %s", npc.id, topic.topic_id)
    return effects


async def _improvise(ctx: ActionContext, npc: NPC, player_input: str) -> ShowMessage:
    location = ctx.game.locations.get(ctx.state.current_location_id)
    text = await ctx.narrator.expand(
        "npc_chatter",
        {
            "npc_name": npc.name,
            "persona": npc.persona or DEFAULT_PERSONA,
            "scene": location.scene_description if location else "",
            "player_input": player_input,
        },
        fallback=npc.fallbacks.off_topic or npc.fallbacks.default,
    )
    return npc_line(npc, text)
