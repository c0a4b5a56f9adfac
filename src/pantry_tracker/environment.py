"""Dependencies and plumbing shared by the reducers."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

from .expiration import DEFAULT_SOON_DAYS
from .reminders import ReminderPolicy


@dataclass
class Environment:
    """Clock, id factory and policies injected into reducers."""

    now: Callable[[], datetime] = datetime.now
    uuid: Callable[[], UUID] = uuid4
    reminder_policy: ReminderPolicy = field(default_factory=ReminderPolicy)
    soon_days: int = DEFAULT_SOON_DAYS

    def today(self) -> date:
        return self.now().date()


@dataclass(frozen=True)
class BindingAction:
    """Set a form or search field directly from the UI."""

    field: str
    value: Any


def apply_binding(state: Any, action: BindingAction, bindable: frozenset[str]) -> None:
    """Assign a bindable field.

    Raises:
        ValueError: If the field is not bindable on this state
    """
    if action.field not in bindable:
        raise ValueError(f"Field '{action.field}' is not bindable on {type(state).__name__}")
    setattr(state, action.field, action.value)
