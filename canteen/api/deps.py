# canteen/api/deps.py
from dataclasses import dataclass

from fastapi import Header, HTTPException

from canteen.core.errors import NotAuthorized


@dataclass(frozen=True)
class Actor:
    user_id: str
    is_admin: bool = False


def get_actor(
    x_user_id: str = Header(None, alias="X-User-Id"),
    x_user_role: str = Header("student", alias="X-User-Role"),
) -> Actor:
    """
    Identity comes from the upstream auth gateway, which has already
    verified the session. This service only reads the claims.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing identity")
    return Actor(user_id=x_user_id, is_admin=(x_user_role or "").lower() == "admin")


def require_admin(actor: Actor) -> Actor:
    if not actor.is_admin:
        raise NotAuthorized()
    return actor
