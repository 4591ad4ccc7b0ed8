from __future__ import annotations


class BudgetError(Exception):
    pass


class InvalidInputError(BudgetError, ValueError):
    """A request carried a value that cannot be interpreted."""


class InvalidStateError(BudgetError):
    """An operation was invoked on a recurring definition in the wrong state."""

    def __init__(self, definition_id: str, state: str, action: str) -> None:
        super().__init__(f"Cannot {action} recurring definition {definition_id} in state {state}")
        self.definition_id = definition_id
        self.state = state
        self.action = action


class NotFoundError(BudgetError, KeyError):
    def __init__(self, kind: str, item_id: str) -> None:
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.item_id = item_id

    def __str__(self) -> str:
        return str(self.args[0])
