"""
Lifecycle states and the transition rules between them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from cms_migrator.exceptions import IllegalTransitionError

if TYPE_CHECKING:
    from cms_migrator.models.entities import Entity


class State(str, Enum):
    UNINITIALIZED = "Uninitialized"
    INDEX = "Index"
    DETAILS = "Details"
    CREATED = "Created"
    REVERTED = "Reverted"
    ERROR = "Error"


@dataclass(frozen=True)
class Lifecycle:
    """
    An ordered sequence of states an entity walks through one step at a time.

    ``Error`` sits outside the sequence: any state short of the last one may
    fail into it, and ``resume`` puts the entity back where it failed so the
    next run tries that step again.
    """

    name: str
    stages: tuple[State, ...]

    @property
    def terminal(self) -> State:
        return self.stages[-1]

    def rank(self, state: State) -> int:
        if state not in self.stages:
            raise IllegalTransitionError(
                f"State '{state.value}' is not part of the {self.name} lifecycle."
            )
        return self.stages.index(state)

    def can_advance(self, current: State, target: State) -> bool:
        if current not in self.stages or target not in self.stages:
            return False
        return self.stages.index(target) == self.stages.index(current) + 1

    def has_reached(self, entity: "Entity", state: State) -> bool:
        """True when the entity is at or past ``state`` (never true in Error)."""
        return entity.state in self.stages and self.rank(entity.state) >= self.rank(state)

    def advance(self, entity: "Entity", target: State) -> None:
        if not self.can_advance(entity.state, target):
            raise IllegalTransitionError(
                f"Cannot move '{entity.label}' from {entity.state.value} to {target.value}."
            )
        entity.state = target

    def fail(self, entity: "Entity", message: str) -> None:
        if entity.state in (State.ERROR, self.terminal):
            raise IllegalTransitionError(
                f"Cannot fail '{entity.label}' from {entity.state.value}."
            )
        entity.error_state = entity.state
        entity.error_message = message
        entity.state = State.ERROR

    def resume(self, entity: "Entity") -> bool:
        """Restores an errored entity to the state it failed in. Returns True if it did."""
        if entity.state is not State.ERROR:
            return False
        previous = entity.error_state
        entity.state = previous if previous in self.stages else self.stages[0]
        entity.error_state = None
        entity.error_message = None
        # Cleared error fields go back to unset so snapshots omit them.
        entity.model_fields_set.difference_update({"error_state", "error_message"})
        return True


STANDARD_LIFECYCLE = Lifecycle(
    "standard", (State.UNINITIALIZED, State.INDEX, State.DETAILS, State.CREATED)
)
REVERT_LIFECYCLE = Lifecycle(
    "revert", (State.UNINITIALIZED, State.INDEX, State.REVERTED)
)
