"""
Policies router: submission, retrieval and lifecycle actions.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlmodel import Session
from typing import List, Optional
import logging

from brokerage.schemas import (
    Actor, PolicyForm, PolicyCreateResponse, PolicyResponse,
    StatusChangeRequest, RejectionRequest, RejectionResponse
)
from brokerage.deps import (
    get_current_actor, require_staff, require_admin, get_store, to_http_exception,
    check_idempotency_key, store_idempotency_response, generate_request_hash
)
from brokerage.db import get_session
from brokerage.errors import BrokerageError
from brokerage.models import Policy
from brokerage.services import lifecycle
from brokerage.services.store import PolicyStore, policy_product_data
from brokerage.services.submission import submit_policy

logger = logging.getLogger("brokerage")

router = APIRouter()


def policy_to_response(policy: Policy) -> PolicyResponse:
    return PolicyResponse(
        policy_id=policy.id,
        policy_number=policy.policy_number,
        client_id=policy.client_id,
        agent_id=policy.agent_id,
        product_id=policy.product_id,
        start_date=policy.start_date,
        end_date=policy.end_date,
        status=policy.status,
        premium_amount=float(policy.premium_amount),
        payment_frequency=policy.payment_frequency,
        contract_details=policy.contract_details,
        product_data=policy_product_data(policy),
        signed_at=policy.signed_at,
        created_at=policy.created_at,
        updated_at=policy.updated_at
    )


def _get_visible_policy(policy_id: str, actor: Actor, store: PolicyStore) -> Policy:
    policy = store.get_policy_by_id(policy_id)
    if not policy:
        raise HTTPException(status_code=404, detail="Policy not found")
    if not lifecycle.can_view(policy, actor):
        raise HTTPException(status_code=403, detail="Policy belongs to another user")
    return policy


@router.post("/policies", response_model=PolicyCreateResponse, status_code=201)
async def create_policy(
    form: PolicyForm,
    request_obj: Request,
    actor: Actor = Depends(get_current_actor),
    session: Session = Depends(get_session)
):
    """
    Submit a policy application.

    This endpoint:
    1. Returns the cached response for a repeated X-Idempotency-Key
    2. Validates the complete form against the product rules
    3. Computes the premium and stores the policy as pending
    """
    request_id = getattr(request_obj.state, "request_id", "unknown")
    logger.info(f"Processing policy submission | request_id={request_id} | actor={actor.user_id}")

    cached_response = await check_idempotency_key(request_obj, session)
    if cached_response:
        logger.info(f"Returning cached response | request_id={request_id}")
        return cached_response

    try:
        result = submit_policy(form, actor, PolicyStore(session))
    except BrokerageError as e:
        logger.warning(f"Policy submission failed | request_id={request_id} | error={e.message}")
        raise to_http_exception(e)

    response_data = PolicyCreateResponse(
        policy_id=result.policy.id,
        policy_number=result.policy_number,
        status=result.policy.status,
        premium_amount=float(result.policy.premium_amount),
        payment_frequency=result.policy.payment_frequency
    )

    idempotency_key = request_obj.headers.get("X-Idempotency-Key")
    if idempotency_key:
        request_hash = generate_request_hash(form.model_dump(mode="json"))
        store_idempotency_response(
            idempotency_key,
            request_obj.method,
            request_obj.url.path,
            request_hash,
            response_data.model_dump(),
            session
        )

    return response_data


@router.get("/policies", response_model=List[PolicyResponse])
async def list_policies(
    status: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    store: PolicyStore = Depends(get_store)
):
    """Policies visible to the caller: own (client), assigned (agent) or all (admin)."""
    if actor.role == "client":
        policies = store.list_policies(client_id=actor.user_id, status=status)
    elif actor.role == "agent":
        policies = store.list_policies(agent_id=actor.user_id, status=status)
    else:
        policies = store.list_policies(status=status)
    return [policy_to_response(p) for p in policies]


@router.get("/policies/{policy_id}", response_model=PolicyResponse)
async def get_policy(
    policy_id: str,
    actor: Actor = Depends(get_current_actor),
    store: PolicyStore = Depends(get_store)
):
    return policy_to_response(_get_visible_policy(policy_id, actor, store))


@router.patch("/policies/{policy_id}", response_model=PolicyResponse)
async def revise_policy(
    policy_id: str,
    form: PolicyForm,
    request_obj: Request,
    actor: Actor = Depends(require_staff),
    store: PolicyStore = Depends(get_store)
):
    """Edit a pending policy; the premium is recomputed."""
    request_id = getattr(request_obj.state, "request_id", "unknown")
    policy = _get_visible_policy(policy_id, actor, store)
    product = store.get_insurance_product_by_id(policy.product_id)
    changes = form.model_dump(exclude_unset=True)

    try:
        policy = lifecycle.revise_policy(policy, changes, product, actor, store)
    except BrokerageError as e:
        logger.warning(f"Policy revision failed | request_id={request_id} | error={e.message}")
        raise to_http_exception(e)

    return policy_to_response(policy)


@router.post("/policies/{policy_id}/status", response_model=PolicyResponse)
async def change_policy_status(
    policy_id: str,
    request: StatusChangeRequest,
    actor: Actor = Depends(require_staff),
    store: PolicyStore = Depends(get_store)
):
    policy = _get_visible_policy(policy_id, actor, store)
    try:
        policy = lifecycle.transition(policy, request.status, actor, store)
    except BrokerageError as e:
        raise to_http_exception(e)
    return policy_to_response(policy)


@router.post("/policies/{policy_id}/reject", response_model=RejectionResponse)
async def reject_policy(
    policy_id: str,
    request: RejectionRequest,
    actor: Actor = Depends(require_staff),
    store: PolicyStore = Depends(get_store)
):
    policy = _get_visible_policy(policy_id, actor, store)
    try:
        lifecycle.reject_policy(policy, request.reasons, request.comments, actor, store)
    except BrokerageError as e:
        raise to_http_exception(e)
    return RejectionResponse(**lifecycle.rejection_summary(store.get_rejection_detail(policy_id)))


@router.get("/policies/{policy_id}/rejection", response_model=RejectionResponse)
async def get_rejection(
    policy_id: str,
    actor: Actor = Depends(get_current_actor),
    store: PolicyStore = Depends(get_store)
):
    """Rejection reasons; readable by the policy's client."""
    _get_visible_policy(policy_id, actor, store)
    detail = store.get_rejection_detail(policy_id)
    if not detail:
        raise HTTPException(status_code=404, detail="Policy has not been rejected")
    return RejectionResponse(**lifecycle.rejection_summary(detail))


@router.post("/policies/{policy_id}/sign", response_model=PolicyResponse)
async def sign_policy(
    policy_id: str,
    actor: Actor = Depends(get_current_actor),
    store: PolicyStore = Depends(get_store)
):
    policy = _get_visible_policy(policy_id, actor, store)
    try:
        policy = lifecycle.sign_policy(policy, actor, store)
    except BrokerageError as e:
        raise to_http_exception(e)
    return policy_to_response(policy)


@router.delete("/policies/{policy_id}", status_code=204)
async def delete_policy(
    policy_id: str,
    actor: Actor = Depends(require_admin),
    store: PolicyStore = Depends(get_store)
):
    if not store.get_policy_by_id(policy_id):
        raise HTTPException(status_code=404, detail="Policy not found")
    try:
        lifecycle.delete_policy(policy_id, actor, store)
    except BrokerageError as e:
        raise to_http_exception(e)
    return Response(status_code=204)
