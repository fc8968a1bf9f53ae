"""
SQLModel database models for the brokerage API.
"""

import uuid
from decimal import Decimal
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, timezone


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Profile(SQLModel, table=True):
    """Client, agent or administrator account."""
    user_id: str = Field(primary_key=True)
    full_name: Optional[str] = None
    email: Optional[str] = Field(default=None, index=True)
    phone_number: Optional[str] = None
    role: str = Field(index=True)  # client | agent | admin
    api_key: str = Field(unique=True, index=True)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)


class InsuranceProduct(SQLModel, table=True):
    """Insurance product offered by the brokerage."""
    __tablename__ = "insurance_product"

    id: str = Field(default_factory=new_id, primary_key=True)
    code: str = Field(unique=True, index=True)  # key into products.yaml
    name: str
    type: str  # life | health | other
    description: Optional[str] = None
    base_premium: float = 0
    currency: str = "USD"
    default_term_months: Optional[int] = None
    fixed_payment_frequency: Optional[str] = None
    coverage_details_json: str = "{}"  # JSON string
    terms_and_conditions: Optional[str] = None
    admin_notes: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Policy(SQLModel, table=True):
    """Policy application and, once signed, the contract."""
    id: str = Field(default_factory=new_id, primary_key=True)
    policy_number: str = Field(unique=True, index=True)
    client_id: str = Field(foreign_key="profile.user_id", index=True)
    product_id: str = Field(foreign_key="insurance_product.id")
    agent_id: Optional[str] = Field(default=None, foreign_key="profile.user_id", index=True)
    start_date: str  # YYYY-MM-DD
    end_date: str  # YYYY-MM-DD
    premium_amount: Decimal = Field(max_digits=12, decimal_places=2)
    payment_frequency: str
    status: str = Field(default="pending", index=True)
    contract_details: Optional[str] = None

    # Life payload
    coverage_amount: Optional[float] = None
    ad_d_included: Optional[bool] = None
    ad_d_coverage: Optional[float] = None
    age_at_inscription: Optional[int] = None
    num_beneficiaries: Optional[int] = None
    beneficiaries_json: Optional[str] = None  # JSON string

    # Health payload
    deductible: Optional[float] = None
    coinsurance: Optional[float] = None
    max_annual: Optional[float] = None
    has_dental: Optional[bool] = None
    has_dental_basic: Optional[bool] = None
    has_dental_premium: Optional[bool] = None
    has_vision: Optional[bool] = None
    has_vision_basic: Optional[bool] = None
    has_vision_full: Optional[bool] = None
    wellness_rebate: Optional[float] = None
    num_dependents: Optional[int] = None
    dependents_details_json: Optional[str] = None  # JSON string

    signed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class RejectionDetail(SQLModel, table=True):
    """Why a pending policy was rejected."""
    __tablename__ = "rejection_detail"

    id: Optional[int] = Field(default=None, primary_key=True)
    policy_id: str = Field(foreign_key="policy.id", unique=True, index=True)
    reasons_json: str  # JSON string
    comments_json: str = "{}"  # JSON string
    rejected_by: Optional[str] = Field(default=None, foreign_key="profile.user_id")
    rejected_at: datetime = Field(default_factory=utc_now)


class PolicyDocument(SQLModel, table=True):
    """Metadata of a document attached to a policy."""
    __tablename__ = "policy_document"

    id: Optional[int] = Field(default=None, primary_key=True)
    policy_id: str = Field(foreign_key="policy.id", index=True)
    document_name: str
    file_url: str
    uploaded_at: datetime = Field(default_factory=utc_now)


class IdempotencyKey(SQLModel, table=True):
    """Idempotency key model for preventing duplicate requests."""
    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(unique=True, index=True)
    method: str
    path: str
    request_hash: str
    response_json: str  # JSON string
    created_at: datetime = Field(default_factory=utc_now)
