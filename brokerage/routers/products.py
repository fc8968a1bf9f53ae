"""
Products router: catalogue reads for everyone, edits for administrators.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from typing import List
import logging

from brokerage.schemas import Actor, ProductCreate, ProductUpdate, ProductResponse, PolicyForm
from brokerage.deps import get_current_actor, require_admin, get_store, to_http_exception
from brokerage.errors import StoreError
from brokerage.models import InsuranceProduct
from brokerage.services.products import get_rule
from brokerage.services.store import PolicyStore, product_coverage_details

logger = logging.getLogger("brokerage")

router = APIRouter()


def product_to_response(product: InsuranceProduct) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        code=product.code,
        name=product.name,
        type=product.type,
        description=product.description,
        base_premium=product.base_premium,
        currency=product.currency,
        default_term_months=product.default_term_months,
        fixed_payment_frequency=product.fixed_payment_frequency,
        coverage_details=product_coverage_details(product),
        terms_and_conditions=product.terms_and_conditions,
        admin_notes=product.admin_notes,
        is_active=product.is_active
    )


@router.get("/products", response_model=List[ProductResponse])
async def list_products(
    actor: Actor = Depends(get_current_actor),
    store: PolicyStore = Depends(get_store)
):
    """List the active insurance products."""
    return [product_to_response(p) for p in store.get_active_insurance_products()]


@router.get("/products/rules/{code}/defaults", response_model=PolicyForm)
async def get_product_defaults(
    code: str,
    actor: Actor = Depends(get_current_actor)
):
    """Initial form values for a product's application form."""
    rule = get_rule(code)
    if rule is None:
        raise HTTPException(status_code=404, detail=f"No rules defined for product {code}")
    return rule.defaults()


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    actor: Actor = Depends(get_current_actor),
    store: PolicyStore = Depends(get_store)
):
    product = store.get_insurance_product_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product_to_response(product)


@router.post("/products", response_model=ProductResponse, status_code=201)
async def create_product(
    request: ProductCreate,
    request_obj: Request,
    actor: Actor = Depends(require_admin),
    store: PolicyStore = Depends(get_store)
):
    """
    Create an insurance product.

    The code must have an entry in the rule table, otherwise policies for the
    product could never be priced.
    """
    request_id = getattr(request_obj.state, "request_id", "unknown")

    if get_rule(request.code) is None:
        raise HTTPException(status_code=400, detail=f"No rules defined for product code {request.code}")
    if store.get_insurance_product_by_code(request.code):
        raise HTTPException(status_code=409, detail=f"Product code {request.code} already exists")

    try:
        product = store.create_insurance_product(request.model_dump())
    except StoreError as e:
        raise to_http_exception(e)

    logger.info(f"Product created | request_id={request_id} | product_id={product.id} | code={product.code}")
    return product_to_response(product)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    request: ProductUpdate,
    request_obj: Request,
    actor: Actor = Depends(require_admin),
    store: PolicyStore = Depends(get_store)
):
    """Edit a product; only the fields sent are changed."""
    request_id = getattr(request_obj.state, "request_id", "unknown")

    if not store.get_insurance_product_by_id(product_id):
        raise HTTPException(status_code=404, detail="Product not found")

    changes = request.model_dump(exclude_unset=True)
    try:
        product = store.update_insurance_product(product_id, changes)
    except StoreError as e:
        raise to_http_exception(e)

    logger.info(f"Product updated | request_id={request_id} | product_id={product_id} | fields={sorted(changes)}")
    return product_to_response(product)
