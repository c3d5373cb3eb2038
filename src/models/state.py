"""Resolution state machine for documents passing through the resolver."""

from __future__ import annotations

from enum import StrEnum

from inkwell.errors import InvalidTransitionError


class ResolutionState(StrEnum):
    """Where a document is in the resolution pipeline."""

    UNRESOLVED = "unresolved"
    CLUSTERED = "clustered"
    ORDERED = "ordered"
    CANONICAL = "canonical"
    HISTORICAL = "historical"

    @property
    def is_terminal(self) -> bool:
        return self in (ResolutionState.CANONICAL, ResolutionState.HISTORICAL)

    def advance(self, target: ResolutionState) -> ResolutionState:
        """Move to ``target`` or raise if the transition is not allowed."""
        if target not in _TRANSITIONS[self]:
            raise InvalidTransitionError(
                f"cannot move from {self.value} to {target.value}"
            )
        return target


_TRANSITIONS: dict[ResolutionState, frozenset[ResolutionState]] = {
    ResolutionState.UNRESOLVED: frozenset({ResolutionState.CLUSTERED}),
    ResolutionState.CLUSTERED: frozenset({ResolutionState.ORDERED}),
    ResolutionState.ORDERED: frozenset(
        {ResolutionState.CANONICAL, ResolutionState.HISTORICAL}
    ),
    ResolutionState.CANONICAL: frozenset(),
    ResolutionState.HISTORICAL: frozenset(),
}
