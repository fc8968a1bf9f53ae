"""
Profiles router: client and agent pickers for policy authoring.
"""

from fastapi import APIRouter, Depends
from typing import List

from brokerage.schemas import Actor, ProfileResponse
from brokerage.deps import get_current_actor, require_staff, get_store
from brokerage.models import Profile
from brokerage.services.store import PolicyStore

router = APIRouter()


def profile_to_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        user_id=profile.user_id,
        full_name=profile.full_name,
        email=profile.email,
        phone_number=profile.phone_number,
        role=profile.role
    )


@router.get("/clients", response_model=List[ProfileResponse])
async def list_clients(
    actor: Actor = Depends(require_staff),
    store: PolicyStore = Depends(get_store)
):
    return [profile_to_response(p) for p in store.get_all_client_profiles()]


@router.get("/agents", response_model=List[ProfileResponse])
async def list_agents(
    actor: Actor = Depends(get_current_actor),
    store: PolicyStore = Depends(get_store)
):
    """Any authenticated user may pick an agent; clients must name one."""
    return [profile_to_response(p) for p in store.get_all_agent_profiles()]
