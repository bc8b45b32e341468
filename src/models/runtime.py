"""
Per-entity runtime state.

Every field is optional: a stored record only carries what differs from, or
has been copied out of, the authored cartridge. The same model is the typed
patch carried by SET_ENTITY_STATE effects.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class EntityRuntimeState(BaseModel):
    """Mutable state of one object, item or NPC."""

    # Containers and devices
    is_open: bool | None = None
    is_locked: bool | None = None
    is_broken: bool | None = None
    is_powered_on: bool | None = None
    is_moved: bool | None = None
    current_state_id: str | None = None

    # Placement and visibility
    parent_id: str | None = Field(default=None, description="Container holding this entity")
    revealed_by: str | None = Field(
        default=None, description="What revealed the entity; unset means hidden"
    )
    taken: bool | None = None

    # Items
    read_count: int | None = None

    # NPCs
    stage: str | None = None
    trust: int | None = None
    attitude: str | None = None
    interaction_count: int | None = None

    def merged(self, patch: EntityRuntimeState) -> EntityRuntimeState:
        """Return a copy with every field explicitly set on the patch applied."""
        return self.model_copy(update=patch.model_dump(exclude_unset=True))
