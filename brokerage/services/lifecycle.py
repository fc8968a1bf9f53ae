"""
Policy lifecycle: status changes, rejection, signature, revision and
administrative deletion.
"""

import json
import logging
from datetime import datetime, date
from typing import Dict, Any, List, Optional

from brokerage.errors import PermissionDeniedError, PolicyValidationError, PreconditionError, TransitionError
from brokerage.models import Policy, utc_now
from brokerage.schemas import Actor, PolicyForm
from brokerage.services.products import ProductRule, find_rule_for_product
from brokerage.services.store import policy_product_data
from brokerage.services.submission import build_payload, resolve_premium

logger = logging.getLogger("brokerage")

TRANSITIONS = {
    "pending": {"awaiting_signature", "rejected", "cancelled", "expired"},
    "awaiting_signature": {"active", "rejected", "cancelled", "expired"},
    "active": {"cancelled", "expired"},
    "rejected": set(),
    "cancelled": set(),
    "expired": set(),
}

ADMIN_ONLY_STATUSES = {"cancelled", "expired"}

REJECTION_REASONS = (
    "missing_documents",
    "incomplete_information",
    "ineligible_age",
    "coverage_out_of_range",
    "invalid_beneficiaries",
    "payment_issue",
    "other",
)

# Fields a revision may not touch; only an admin may reassign the agent
_FIXED_FIELDS = {"client_id", "product_id"}
_ADMIN_FIELDS = {"agent_id"}


def can_transition(current: str, new_status: str) -> bool:
    return new_status in TRANSITIONS.get(current, set())


def can_view(policy: Policy, actor: Actor) -> bool:
    """Clients see their own policies, agents the ones assigned to them."""
    if actor.role == "admin":
        return True
    if actor.role == "agent":
        return policy.agent_id == actor.user_id
    return policy.client_id == actor.user_id


def _require_staff(policy: Policy, actor: Actor):
    if actor.role == "admin":
        return
    if actor.role == "agent" and policy.agent_id == actor.user_id:
        return
    raise PermissionDeniedError("No tiene permisos para gestionar esta póliza.")


def transition(policy: Policy, new_status: str, actor: Actor, store) -> Policy:
    """
    Move a policy to a new status.

    Raises:
        PermissionDeniedError: clients, unassigned agents, or a non-admin
            cancelling/expiring
        TransitionError: the move is not allowed from the current status
    """
    _require_staff(policy, actor)
    if new_status in ADMIN_ONLY_STATUSES and actor.role != "admin":
        raise PermissionDeniedError("Solo un administrador puede cancelar o expirar una póliza.")
    if not can_transition(policy.status, new_status):
        raise TransitionError(f"No se puede cambiar el estado de {policy.status} a {new_status}.")

    previous = policy.status
    updated = store.update_policy(policy.id, {"status": new_status})
    logger.info(
        f"Policy status changed | policy_number={policy.policy_number} | "
        f"from={previous} | to={new_status} | actor={actor.user_id}"
    )
    return updated


def reject_policy(
    policy: Policy,
    reasons: List[str],
    comments: Optional[Dict[str, str]],
    actor: Actor,
    store
) -> Policy:
    """
    Reject a pending policy and record why.

    Args:
        policy: Policy in pending status
        reasons: Coded reasons, at least one
        comments: Optional free text per reason
        actor: Agent or admin
        store: PolicyStore

    Returns:
        Updated policy in rejected status
    """
    _require_staff(policy, actor)
    if policy.status != "pending":
        raise TransitionError("Solo se pueden rechazar pólizas pendientes.")
    if not reasons:
        raise PreconditionError("Debe indicar al menos un motivo de rechazo.")

    unknown = [reason for reason in reasons if reason not in REJECTION_REASONS]
    if unknown:
        raise PreconditionError(f"Motivos de rechazo no válidos: {', '.join(unknown)}")

    comments = {reason: text for reason, text in (comments or {}).items() if reason in reasons and text}
    store.add_rejection_detail(policy.id, list(reasons), comments, actor.user_id)
    updated = store.update_policy(policy.id, {"status": "rejected"})

    logger.info(
        f"Policy rejected | policy_number={policy.policy_number} | "
        f"reasons={','.join(reasons)} | actor={actor.user_id}"
    )
    return updated


def rejection_summary(detail) -> Dict[str, Any]:
    return {
        "policy_id": detail.policy_id,
        "reasons": json.loads(detail.reasons_json),
        "comments": json.loads(detail.comments_json or "{}"),
        "rejected_at": detail.rejected_at,
        "rejected_by": detail.rejected_by,
    }


def sign_policy(policy: Policy, actor: Actor, store, now: Optional[datetime] = None) -> Policy:
    """The policy's client signs it; awaiting_signature becomes active."""
    if actor.role != "client" or policy.client_id != actor.user_id:
        raise PermissionDeniedError("Solo el cliente de la póliza puede firmarla.")
    if policy.status != "awaiting_signature":
        raise TransitionError("La póliza no está pendiente de firma.")

    updated = store.update_policy(policy.id, {
        "status": "active",
        "signed_at": now or utc_now(),
    })
    logger.info(f"Policy signed | policy_number={policy.policy_number} | client={actor.user_id}")
    return updated


def policy_to_form(policy: Policy, rule: ProductRule) -> PolicyForm:
    """Rebuild the editable form state of a stored policy."""
    data = policy_product_data(policy)

    # has_dental/has_vision are only form inputs where the product declares them
    declared = rule.params.get("defaults", {})
    for flag in ("has_dental", "has_vision"):
        if flag not in declared:
            data.pop(flag, None)
    data["wants_dental_premium"] = bool(policy.has_dental_premium)
    data["wants_vision"] = bool(policy.has_vision)

    data.update(
        client_id=policy.client_id,
        product_id=policy.product_id,
        agent_id=policy.agent_id,
        start_date=policy.start_date,
        end_date=policy.end_date,
        payment_frequency=policy.payment_frequency,
        contract_details=policy.contract_details,
        premium_amount=policy.premium_amount if rule.editable_premium else None,
    )
    return PolicyForm.model_validate(data)


def revise_policy(
    policy: Policy,
    changes: Dict[str, Any],
    product,
    actor: Actor,
    store,
    today: Optional[date] = None
) -> Policy:
    """
    Apply an edit to a pending policy.

    The merged form is validated as for a new submission and the premium is
    recomputed before the partial update is stored.

    Raises:
        TransitionError: the policy is no longer pending
        PreconditionError: no rule for the product, or a fixed field changed
        PolicyValidationError: the edited form has field errors
    """
    _require_staff(policy, actor)
    if policy.status != "pending":
        raise TransitionError("Solo se pueden modificar pólizas pendientes.")

    rule = find_rule_for_product(product)
    if rule is None:
        raise PreconditionError(f"No hay reglas de tarificación para el producto {product.name}.")

    touched = _FIXED_FIELDS.intersection(changes)
    if any(changes[field] != getattr(policy, field) for field in touched):
        raise PreconditionError("No se puede cambiar el cliente ni el producto de una póliza.")
    if actor.role != "admin" and any(
        changes[field] != getattr(policy, field) for field in _ADMIN_FIELDS.intersection(changes)
    ):
        raise PermissionDeniedError("Solo un administrador puede reasignar el agente de una póliza.")

    form = policy_to_form(policy, rule)
    form = PolicyForm.model_validate({**form.model_dump(), **changes})
    if product.fixed_payment_frequency:
        form = form.model_copy(update={"payment_frequency": product.fixed_payment_frequency})

    errors = rule.validate(form, for_submission=True, today=today)
    if errors:
        raise PolicyValidationError(errors)

    partial = build_payload(form, rule, policy.policy_number, resolve_premium(form, rule))
    for key in ("policy_number", "status", "client_id", "product_id"):
        partial.pop(key)

    updated = store.update_policy(policy.id, partial)
    logger.info(
        f"Policy revised | policy_number={policy.policy_number} | "
        f"fields={sorted(changes)} | premium={partial['premium_amount']}"
    )
    return updated


def delete_policy(policy_id: str, actor: Actor, store) -> None:
    """Administrative hard delete; documents and rejection go with it."""
    if actor.role != "admin":
        raise PermissionDeniedError("Solo un administrador puede eliminar pólizas.")
    store.delete_policy(policy_id)
    logger.info(f"Policy deleted | policy_id={policy_id} | actor={actor.user_id}")
