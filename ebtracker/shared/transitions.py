"""
Action dispatch tables for PUT {action, data} endpoints.

Each workflow entity declares an Enum of its actions and a table mapping every
member to a Transition: the roles allowed to perform it (None means any
authenticated role) and the pydantic model its payload must satisfy.
"""

from enum import Enum
from typing import Callable, NamedTuple, Optional, Sequence, TypeVar

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict

from ..auth import CurrentUser, ensure_role
from .validators import parse_payload

A = TypeVar("A", bound=Enum)


class EmptyPayload(BaseModel):
    model_config = ConfigDict(extra="allow")


class Transition(NamedTuple):
    roles: Optional[tuple[str, ...]]
    payload: type[BaseModel] = EmptyPayload


class ActionRequest(BaseModel):
    """Body of every action-keyed PUT"""

    action: Optional[str] = None
    data: Optional[dict] = None


def parse_action(actions: type[A], action: Optional[str], aliases: Optional[dict] = None) -> A:
    if not action:
        raise HTTPException(status_code=400, detail="Action is required")
    if aliases and action in aliases:
        action = aliases[action]
    try:
        return actions(action)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid action: {action}") from e


def authorize_transition(table: dict, action: Enum, user: CurrentUser, data: Optional[dict]) -> BaseModel:
    """Check the caller's role for `action` and return its validated payload"""
    transition = table[action]
    ensure_role(user, transition.roles)
    return parse_payload(transition.payload, data)


class Outcome(NamedTuple):
    """What an action writes, how the activity log describes it, and what runs after commit"""

    updates: dict
    detail: str
    effects: Sequence[Callable[[], object]] = ()
