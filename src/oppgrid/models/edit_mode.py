"""Per-row edit-mode flags for the grid's field groups.

Each field group is either Viewing (False) or Editing (True). Every transition
bumps a per-group generation counter; a deferred (blur) transition only applies
if the generation it captured is still current, so an explicit completion or a
fresh start always wins over an older timer.
"""

from __future__ import annotations

from .constants import FIELD_GROUPS, FieldGroup


def field_group_for(field_name: str | None) -> FieldGroup:
    """Map a field name (or alias) to its edit-mode group.

    Total and pure: unknown names (and None) fall through to GENERIC.
    """
    if not field_name:
        return FieldGroup.GENERIC
    return FIELD_GROUPS.get(field_name, FieldGroup.GENERIC)


class EditModeTracker:
    """Viewing/Editing state machine for every field group of one row."""

    def __init__(self) -> None:
        self._editing: dict[FieldGroup, bool] = {group: False for group in FieldGroup}
        self._generation: dict[FieldGroup, int] = {group: 0 for group in FieldGroup}

    def __repr__(self) -> str:
        editing = [group.value for group, flag in self._editing.items() if flag]
        return f"EditModeTracker(editing={editing})"

    def is_editing(self, group: FieldGroup) -> bool:
        """Check if the group is in Editing state."""
        return self._editing[group]

    def generation(self, group: FieldGroup) -> int:
        """Get the group's current transition generation."""
        return self._generation[group]

    def start(self, group: FieldGroup) -> None:
        """Viewing -> Editing."""
        self._generation[group] += 1
        self._editing[group] = True

    def finish(self, group: FieldGroup) -> bool:
        """Editing -> Viewing immediately (logical completion).

        Returns:
            True if the group was Editing before the call
        """
        was_editing = self._editing[group]
        self._generation[group] += 1
        self._editing[group] = False
        return was_editing

    def finish_if_current(self, group: FieldGroup, generation: int) -> bool:
        """Editing -> Viewing only if no transition happened since `generation`.

        Used by grace-delay timers; a stale timer does nothing.

        Returns:
            True if the transition was applied
        """
        if self._generation[group] != generation:
            return False
        return self.finish(group)

    def reset(self) -> None:
        """Put every group back into Viewing and invalidate pending timers."""
        for group in FieldGroup:
            self._generation[group] += 1
            self._editing[group] = False
