"""
eduprogress/security/principal.py
The authenticated principal consumed by the HTTP adapter

Token verification happens upstream (identity service / gateway middleware),
which stores the verified principal on request.state.principal. This module
only reads it back and enforces role requirements.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import Depends, Request

from eduprogress.exceptions import UnauthorizedError, ForbiddenError
from eduprogress.orm.user import UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """An authenticated caller: who and in which role."""
    id: int
    role: UserRole

    @classmethod
    def from_claims(cls, claims: Any) -> "Principal":
        """Accept a Principal, or a mapping with id/role (or userId/role) keys."""
        if isinstance(claims, Principal):
            return claims
        if isinstance(claims, dict):
            raw_id = claims.get("id", claims.get("userId"))
            raw_role = claims.get("role")
            try:
                return cls(id=int(raw_id), role=UserRole(raw_role))
            except (TypeError, ValueError):
                logger.warning(f"Rejected malformed principal claims: {claims!r}")
        raise UnauthorizedError("Invalid principal")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin


async def get_current_principal(request: Request) -> Principal:
    """FastAPI dependency: the principal placed on the request by upstream auth."""
    claims = getattr(request.state, "principal", None)
    if claims is None:
        raise UnauthorizedError()
    return Principal.from_claims(claims)


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory restricting an endpoint to the given roles."""
    allowed = set(roles)

    async def _dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise ForbiddenError(
                f"Role '{principal.role.value}' cannot access this resource"
            )
        return principal

    return _dependency
