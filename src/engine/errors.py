"""
Exceptions raised by the noir engine.

Player mistakes are never exceptions; they come back as messages. These
cover broken cartridges and programming errors.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for engine errors."""


class CartridgeIntegrityError(EngineError):
    """The cartridge refers to something that does not exist."""


class UnknownEffectError(EngineError):
    """The reducer was handed an effect it has no rule for."""
