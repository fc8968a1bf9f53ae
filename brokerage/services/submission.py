"""
Policy submission orchestrator.

Turns a completed PolicyForm into a stored policy: resolves the actor and
product, validates the whole form, fixes the premium and hands the canonical
creation payload to the store.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, Optional

from brokerage.errors import PolicyValidationError, PreconditionError
from brokerage.schemas import Actor, PolicyForm
from brokerage.services.pricing import to_money
from brokerage.services.products import ProductRule, find_rule_for_product

logger = logging.getLogger("brokerage")

BASE36 = string.digits + string.ascii_uppercase


@dataclass(frozen=True)
class SubmissionResult:
    policy_number: str
    payload: Dict[str, Any]
    policy: Any
    next_form: PolicyForm


def generate_policy_number(now: Optional[datetime] = None) -> str:
    """POL-<unix millis>-<6 random base36 characters>."""
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(BASE36) for _ in range(6))
    return f"POL-{millis}-{suffix}"


# Payload fields whose stored value is derived from several form fields
_DERIVED_FIELDS = {
    "has_dental": lambda f: f.has_dental if f.has_dental is not None
    else (f.has_dental_basic or f.has_dental_premium or f.wants_dental_premium),
    "has_dental_premium": lambda f: f.has_dental_premium or f.wants_dental_premium,
    "has_vision": lambda f: f.has_vision if f.has_vision is not None
    else (f.has_vision_basic or f.has_vision_full or f.wants_vision),
    "beneficiaries": lambda f: [b.model_dump() for b in f.beneficiaries],
    "dependents_details": lambda f: [d.model_dump() for d in f.dependents_details],
}


def build_payload(form: PolicyForm, rule: ProductRule, policy_number: str, premium: Decimal) -> Dict[str, Any]:
    """
    Assemble the canonical policy-creation payload.

    Common fields first, then the product-specific fields the rule declares.
    """
    payload = {
        "policy_number": policy_number,
        "client_id": form.client_id,
        "product_id": form.product_id,
        "agent_id": form.agent_id,
        "start_date": form.start_date,
        "end_date": form.end_date,
        "payment_frequency": form.payment_frequency,
        "status": "pending",
        "contract_details": form.contract_details,
        "premium_amount": premium,
    }
    for field in rule.payload_fields:
        derive = _DERIVED_FIELDS.get(field)
        payload[field] = derive(form) if derive else getattr(form, field)
    return payload


def resolve_premium(form: PolicyForm, rule: ProductRule) -> Decimal:
    """Computed premium, or the user's value for editable-premium products."""
    if rule.editable_premium and form.premium_amount is not None:
        return to_money(form.premium_amount)
    return rule.compute_premium(form)


def apply_actor(form: PolicyForm, actor: Optional[Actor]) -> PolicyForm:
    """
    Stamp the actor identity onto the form.

    Raises:
        PreconditionError: when no authenticated actor is given
    """
    if actor is None or not actor.user_id:
        raise PreconditionError("Se requiere un usuario autenticado para crear la póliza.")

    if actor.role == "agent":
        return form.model_copy(update={"agent_id": actor.user_id})
    if actor.role == "client":
        return form.model_copy(update={"client_id": actor.user_id})
    return form


def resolve_rule(form: PolicyForm, store):
    """
    Look up the form's product and its rule entry.

    Returns:
        Tuple of (product, rule)

    Raises:
        PreconditionError: product missing, inactive or without rules
    """
    if not form.product_id:
        raise PreconditionError("El producto de seguro no está seleccionado.")

    product = store.get_insurance_product_by_id(form.product_id)
    if product is None or not product.is_active:
        raise PreconditionError("El producto seleccionado no existe o no está activo.")

    rule = find_rule_for_product(product)
    if rule is None:
        raise PreconditionError(f"No hay reglas de tarificación para el producto {product.name}.")
    return product, rule


def submit_policy(
    form: PolicyForm,
    actor: Optional[Actor],
    store,
    now: Optional[datetime] = None
) -> SubmissionResult:
    """
    Validate a policy form and create the policy.

    Args:
        form: Completed form
        actor: Authenticated identity (agent, client or admin)
        store: Data-access collaborator (PolicyStore)
        now: Clock override for the policy number and date checks

    Returns:
        SubmissionResult with the stored policy and a fresh form

    Raises:
        PreconditionError: missing actor, product or rule
        PolicyValidationError: the form has field errors; nothing is stored
        StoreError: the store rejected the payload
    """
    now = now or datetime.now(timezone.utc)
    form = apply_actor(form, actor)
    product, rule = resolve_rule(form, store)

    if product.fixed_payment_frequency:
        form = form.model_copy(update={"payment_frequency": product.fixed_payment_frequency})

    errors = rule.validate(form, for_submission=True, today=now.date())
    if actor.role == "client" and not form.agent_id:
        errors.setdefault("agent_id", "Por favor, selecciona un agente.")
    if errors:
        logger.info(f"Policy submission rejected | product={rule.code} | errors={sorted(errors)}")
        raise PolicyValidationError(errors)

    policy_number = generate_policy_number(now)
    premium = resolve_premium(form, rule)
    payload = build_payload(form, rule, policy_number, premium)

    policy = store.create_policy(payload)
    logger.info(
        f"Policy created | policy_number={policy_number} | product={rule.code} | "
        f"premium={premium} | frequency={form.payment_frequency}"
    )

    return SubmissionResult(
        policy_number=policy_number,
        payload=payload,
        policy=policy,
        next_form=rule.defaults()
    )
