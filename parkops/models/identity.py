"""Authenticated principal passed into every operation."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Role memberships supplied by the identity provider."""

    CUSTOMER = "customer"
    OWNER = "owner"
    ADMIN = "admin"


class Identity(BaseModel):
    """Caller identity resolved once per request."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1, description="Authenticated user ID")
    roles: frozenset[Role] = Field(default_factory=frozenset)

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles
