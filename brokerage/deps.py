"""
Dependencies for authentication, role guards and idempotency.
"""

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional, Dict, Any
import hashlib
import json
from sqlmodel import Session
from brokerage.db import get_session
from brokerage.errors import BrokerageError, PolicyValidationError
from brokerage.models import Profile, IdempotencyKey
from brokerage.schemas import Actor
from brokerage.services.store import PolicyStore

security = HTTPBearer()


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: Session = Depends(get_session)
) -> Actor:
    """
    Resolve the bearer API key to the profile making the request.
    """
    api_key = credentials.credentials

    profile = session.query(Profile).filter(Profile.api_key == api_key).first()

    if not profile or not profile.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )

    return Actor(user_id=profile.user_id, role=profile.role)


def require_roles(*roles: str):
    """Build a dependency that only lets the given roles through."""

    async def guard(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {actor.role} is not allowed to perform this action"
            )
        return actor

    return guard


require_staff = require_roles("agent", "admin")
require_admin = require_roles("admin")


def get_store(session: Session = Depends(get_session)) -> PolicyStore:
    return PolicyStore(session)


async def check_idempotency_key(
    request: Request,
    session: Session
) -> Optional[Dict[str, Any]]:
    """
    Check idempotency key for duplicate requests.
    Returns None if new request, or cached response if duplicate.
    """
    idempotency_key = request.headers.get("X-Idempotency-Key")

    if not idempotency_key:
        return None

    cached_response = session.query(IdempotencyKey).filter(
        IdempotencyKey.key == idempotency_key,
        IdempotencyKey.method == request.method,
        IdempotencyKey.path == request.url.path
    ).first()

    if cached_response:
        return json.loads(cached_response.response_json)

    return None


def store_idempotency_response(
    idempotency_key: Optional[str],
    method: str,
    path: str,
    request_hash: str,
    response_data: Dict[str, Any],
    session: Session
) -> None:
    """
    Store response for idempotency key to prevent duplicate processing.
    """
    if not idempotency_key:
        return

    idempotency_record = IdempotencyKey(
        key=idempotency_key,
        method=method,
        path=path,
        request_hash=request_hash,
        response_json=json.dumps(response_data, default=str)
    )

    session.add(idempotency_record)
    session.commit()


def generate_request_hash(request_body: Dict[str, Any]) -> str:
    """Generate a hash for request body to detect duplicates."""
    # Sort keys to ensure consistent hashing
    sorted_body = json.dumps(request_body, sort_keys=True, default=str)
    return hashlib.sha256(sorted_body.encode()).hexdigest()


def to_http_exception(error: BrokerageError) -> HTTPException:
    """Translate a service error into the HTTP response routers raise."""
    if isinstance(error, PolicyValidationError):
        return HTTPException(
            status_code=error.status_code,
            detail={"message": error.message, "errors": error.errors}
        )
    return HTTPException(status_code=error.status_code, detail=error.message)
