"""
Pydantic schemas for the policy form state and request/response validation.
"""

from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any, Tuple, Literal
from datetime import datetime

PaymentFrequency = Literal["monthly", "quarterly", "annually"]
PolicyStatus = Literal["pending", "awaiting_signature", "active", "cancelled", "expired", "rejected"]
ProductType = Literal["life", "health", "other"]
Role = Literal["client", "agent", "admin"]

# Relationship codes shared by beneficiaries and dependents. `other` pairs
# with a free-text custom_relationship.
RELATIONSHIPS = ("spouse", "child", "parent", "sibling", "other")


class Actor(BaseModel):
    """Authenticated identity performing a policy operation."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role


# Form state
class Beneficiary(BaseModel):
    """One beneficiary entry of a life policy."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    name: str = ""
    relationship: str = ""
    custom_relationship: Optional[str] = None
    percentage: float = 0


class Dependent(BaseModel):
    """One dependent covered by the policy."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    name: str = ""
    birth_date: str = ""
    relationship: str = ""
    custom_relationship: Optional[str] = None


class PolicyForm(BaseModel):
    """
    Complete state of one policy application being authored.

    Instances are immutable; every edit in services.members returns a new
    form so rule evaluation can run on any snapshot.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    # Common fields
    client_id: Optional[str] = None
    product_id: Optional[str] = None
    agent_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    premium_amount: Optional[Decimal] = Field(None, description="Only honoured for editable-premium products")
    payment_frequency: PaymentFrequency = "monthly"
    contract_details: Optional[str] = None

    # Life fields
    coverage_amount: Optional[float] = None
    age_at_inscription: Optional[int] = None
    ad_d_included: bool = False
    ad_d_coverage: Optional[float] = None
    num_beneficiaries: int = 0
    beneficiaries: Tuple[Beneficiary, ...] = ()

    # Health fields
    deductible: Optional[float] = None
    coinsurance: Optional[float] = None
    max_annual: Optional[float] = None
    has_dental: Optional[bool] = None
    has_dental_basic: bool = False
    has_dental_premium: bool = False
    wants_dental_premium: bool = False
    has_vision: Optional[bool] = None
    has_vision_basic: bool = False
    has_vision_full: bool = False
    wants_vision: bool = False
    wellness_rebate: Optional[float] = None
    num_dependents: int = 0
    dependents_details: Tuple[Dependent, ...] = ()

    @property
    def beneficiary_summary(self):
        from brokerage.services.members import summarize
        return summarize(self.beneficiaries)

    @property
    def dependent_summary(self):
        from brokerage.services.members import summarize
        return summarize(self.dependents_details)


# Product schemas
class ProductCreate(BaseModel):
    """Administrator request to create an insurance product."""
    code: str = Field(description="Rule-table key, e.g. plan_basico")
    name: str
    type: ProductType
    description: Optional[str] = None
    base_premium: float = Field(ge=0)
    currency: str = "USD"
    default_term_months: Optional[int] = Field(None, gt=0)
    fixed_payment_frequency: Optional[PaymentFrequency] = None
    coverage_details: Dict[str, Any] = Field(default_factory=dict)
    terms_and_conditions: Optional[str] = None
    admin_notes: Optional[str] = None
    is_active: bool = True


class ProductUpdate(BaseModel):
    """Administrator edit; only the fields sent are changed."""
    name: Optional[str] = None
    description: Optional[str] = None
    base_premium: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    default_term_months: Optional[int] = Field(None, gt=0)
    fixed_payment_frequency: Optional[PaymentFrequency] = None
    coverage_details: Optional[Dict[str, Any]] = None
    terms_and_conditions: Optional[str] = None
    admin_notes: Optional[str] = None
    is_active: Optional[bool] = None


class ProductResponse(BaseModel):
    id: str
    code: str
    name: str
    type: str
    description: Optional[str]
    base_premium: float
    currency: str
    default_term_months: Optional[int]
    fixed_payment_frequency: Optional[str]
    coverage_details: Dict[str, Any]
    terms_and_conditions: Optional[str]
    admin_notes: Optional[str]
    is_active: bool


class ProfileResponse(BaseModel):
    user_id: str
    full_name: Optional[str]
    email: Optional[str]
    phone_number: Optional[str]
    role: str


# Quote schemas
class QuoteResponse(BaseModel):
    """Live premium estimate and current field errors for a draft form."""
    product_code: str
    payment_frequency: str
    premium_amount: float
    monthly_premium: float
    premium_editable: bool
    price_breakdown: Dict[str, float]
    errors: Dict[str, str]


# Policy schemas
class PolicyCreateResponse(BaseModel):
    policy_id: str
    policy_number: str
    status: str
    premium_amount: float
    payment_frequency: str


class PolicyResponse(BaseModel):
    """Policy details response."""
    policy_id: str
    policy_number: str
    client_id: str
    agent_id: Optional[str]
    product_id: str
    start_date: str
    end_date: str
    status: str
    premium_amount: float
    payment_frequency: str
    contract_details: Optional[str]
    product_data: Dict[str, Any]
    signed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class StatusChangeRequest(BaseModel):
    status: PolicyStatus


class RejectionRequest(BaseModel):
    reasons: List[str] = Field(min_length=1)
    comments: Dict[str, str] = Field(default_factory=dict)


class RejectionResponse(BaseModel):
    policy_id: str
    reasons: List[str]
    comments: Dict[str, str]
    rejected_at: datetime
    rejected_by: Optional[str]
