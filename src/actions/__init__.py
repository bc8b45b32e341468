"""
Per-verb action handlers for the noir engine.

Each handler is a coroutine taking an ActionContext and the target phrases
and returning the ordered effects of the command. Handlers never change
state themselves.
"""

from __future__ import annotations

from src.actions.common import ActionContext, TargetLookup, TargetStatus, locate_target
from src.actions.containers import (
    handle_break,
    handle_close,
    handle_open,
    handle_password,
    handle_search,
    handle_unlock,
)
from src.actions.exploration import (
    handle_climb,
    handle_examine,
    handle_goto,
    handle_look,
    handle_move,
    handle_read,
    handle_smell,
)
from src.actions.items import (
    handle_combine,
    handle_drop,
    handle_inventory,
    handle_take,
    handle_use,
)
from src.actions.social import end_conversation, handle_talk

__all__ = [
    "ActionContext",
    "TargetLookup",
    "TargetStatus",
    "end_conversation",
    "handle_break",
    "handle_climb",
    "handle_close",
    "handle_combine",
    "handle_drop",
    "handle_examine",
    "handle_goto",
    "handle_inventory",
    "handle_look",
    "handle_move",
    "handle_open",
    "handle_password",
    "handle_read",
    "handle_search",
    "handle_smell",
    "handle_take",
    "handle_unlock",
    "handle_use",
    "locate_target",
]
