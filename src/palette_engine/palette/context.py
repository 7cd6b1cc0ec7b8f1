from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ContextModel(BaseModel):
    """Base class for the immutable values handed to providers and commands."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


class UserIdentity(ContextModel):
    id: str
    role: str


class Selection(ContextModel):
    type: str
    id: str


class CommandContext(ContextModel):
    """Snapshot of where the user is: route, identity and current selection.

    Instances are frozen and compare structurally, so two contexts built from
    the same route, user and selection are equal (and hash alike).
    """

    route: str
    user: UserIdentity
    selection: Selection | None = None

    def with_route(self, route: str) -> CommandContext:
        return self.model_copy(update={"route": route})

    def with_selection(self, selection: Selection | None) -> CommandContext:
        return self.model_copy(update={"selection": selection})


__all__ = ["CommandContext", "ContextModel", "Selection", "UserIdentity"]
