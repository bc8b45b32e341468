"""
Core Engine for the noir engine.

The engine resolves a player command against the cartridge:
- Matching (which entity a phrase names)
- Visibility and reach (can the player see it, can they touch it)
- Validation and handler resolution (what the verb does to it)
- Outcome building and focus policy (which effects follow)
- Reduction (applying effects to produce the next state)

The command processor and parser sit on top of the action handlers and are
imported from their own modules (src.engine.processor, src.engine.parser).
"""

from __future__ import annotations

from src.engine.errors import CartridgeIntegrityError, EngineError, UnknownEffectError
from src.engine.focus import FOCUS_POLICY, FocusRule, determine_next_focus
from src.engine.gating import GatedContentResult, check_for_gated_content
from src.engine.handlers import (
    HandlerAvailability,
    HandlerResolution,
    classify_handler,
    get_effective_handler,
)
from src.engine.matcher import BestMatch, MatchCategory, MatchOptions, find_best_match
from src.engine.models import Command, CommandResult, EngineConfig
from src.engine.outcomes import build_effects_from_outcome, evaluate_handler_outcome
from src.engine.state_manager import EffectApplication, apply_effects, create_initial_state
from src.engine.validator import (
    ValidationResult,
    evaluate_conditions,
    is_action_applicable,
    validate,
)
from src.engine.visibility import (
    ReachFailure,
    ReachResult,
    check_reach,
    get_visible_entities,
)

__all__ = [
    # Errors
    "CartridgeIntegrityError",
    "EngineError",
    "UnknownEffectError",
    # Models
    "Command",
    "CommandResult",
    "EngineConfig",
    # Matching and visibility
    "BestMatch",
    "MatchCategory",
    "MatchOptions",
    "ReachFailure",
    "ReachResult",
    "check_reach",
    "find_best_match",
    "get_visible_entities",
    "GatedContentResult",
    "check_for_gated_content",
    # Validation and handlers
    "HandlerAvailability",
    "HandlerResolution",
    "ValidationResult",
    "classify_handler",
    "evaluate_conditions",
    "get_effective_handler",
    "is_action_applicable",
    "validate",
    # Outcomes and focus
    "FOCUS_POLICY",
    "FocusRule",
    "build_effects_from_outcome",
    "determine_next_focus",
    "evaluate_handler_outcome",
    # Reducer
    "EffectApplication",
    "apply_effects",
    "create_initial_state",
]
