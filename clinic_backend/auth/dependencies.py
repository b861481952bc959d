from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clinic_backend.auth import jwt_handler
from clinic_backend.scheduling.lifecycle import ActorRole

security = HTTPBearer()


@dataclass(frozen=True)
class Actor:
    """Caller identity as asserted by the identity provider's token."""
    id: str
    role: ActorRole

    @property
    def is_patient(self) -> bool:
        return self.role is ActorRole.PATIENT

    @property
    def is_provider(self) -> bool:
        return self.role is ActorRole.DOCTOR


def actor_from_claims(payload: dict) -> Actor:
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    try:
        role = ActorRole(str(payload.get("role", "")).strip().lower())
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Invalid token role") from exc

    return Actor(id=str(subject), role=role)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    return actor_from_claims(payload)


def require_roles(*roles: ActorRole):
    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(status_code=403, detail="Not allowed for this role")
        return actor

    return dependency
