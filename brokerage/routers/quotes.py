"""
Quotes router: live premium and field errors for a draft policy form.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
import logging

from brokerage.schemas import Actor, PolicyForm, QuoteResponse
from brokerage.deps import get_current_actor, get_store
from brokerage.services.products import get_rule
from brokerage.services.store import PolicyStore

logger = logging.getLogger("brokerage")

router = APIRouter()


@router.post("/quotes/{product_code}", response_model=QuoteResponse)
async def create_quote(
    product_code: str,
    form: PolicyForm,
    request_obj: Request,
    actor: Actor = Depends(get_current_actor),
    store: PolicyStore = Depends(get_store)
):
    """
    Price a draft form.

    This endpoint:
    1. Resolves the product rule
    2. Applies the product's fixed payment frequency, if any
    3. Computes the premium and its monthly breakdown
    4. Returns the current field errors (draft mode, nothing is stored)
    """
    request_id = getattr(request_obj.state, "request_id", "unknown")
    logger.info(f"Processing quote request | request_id={request_id} | product={product_code}")

    rule = get_rule(product_code)
    if rule is None:
        raise HTTPException(status_code=404, detail=f"No rules defined for product {product_code}")

    product = store.get_insurance_product_by_code(product_code)
    if product is not None and product.fixed_payment_frequency:
        form = form.model_copy(update={"payment_frequency": product.fixed_payment_frequency})

    breakdown = rule.premium_breakdown(form)
    premium = rule.compute_premium(form)
    errors = rule.validate(form)

    logger.info(
        f"Quote computed | request_id={request_id} | product={product_code} | "
        f"premium={premium} | frequency={form.payment_frequency} | errors={len(errors)}"
    )

    return QuoteResponse(
        product_code=product_code,
        payment_frequency=form.payment_frequency,
        premium_amount=float(premium),
        monthly_premium=float(breakdown["monthly"]),
        premium_editable=rule.editable_premium,
        price_breakdown={name: float(amount) for name, amount in breakdown.items()},
        errors=errors
    )
