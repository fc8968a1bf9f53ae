"""
Per-product rule table.

One ProductRule per product code, built from the parameters in
config/products.yaml. The rule exposes the three operations every product
form needs: defaults, compute_premium and validate.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from threading import Lock
from typing import Dict, Any, Optional, Tuple

from brokerage.cache import config_cache
from brokerage.schemas import PolicyForm
from brokerage.services import eligibility, pricing


@dataclass(frozen=True)
class ProductRule:
    code: str
    name: str
    product_type: str
    params: Dict[str, Any] = field(repr=False)

    @property
    def premium_params(self) -> Dict[str, Any]:
        return self.params.get("premium", {})

    @property
    def editable_premium(self) -> bool:
        """Applicant may type a premium at or above the computed one."""
        return bool(self.premium_params.get("editable"))

    @property
    def beneficiary_bounds(self) -> Optional[Dict[str, int]]:
        return self.params.get("beneficiaries")

    @property
    def dependent_bounds(self) -> Optional[Dict[str, Any]]:
        return self.params.get("dependents")

    @property
    def payload_fields(self) -> Tuple[str, ...]:
        return tuple(self.params.get("payload", ()))

    def defaults(self, **overrides) -> PolicyForm:
        """Initial form for this product; overrides set common fields."""
        values = dict(self.params.get("defaults", {}))
        values.update(overrides)
        return PolicyForm.model_validate(values)

    def compute_premium(self, form: PolicyForm, frequency: Optional[str] = None) -> Decimal:
        premium, _ = pricing.calculate_premium(form, self.premium_params, frequency)
        return premium

    def premium_breakdown(self, form: PolicyForm, frequency: Optional[str] = None) -> Dict[str, Decimal]:
        _, breakdown = pricing.calculate_premium(form, self.premium_params, frequency)
        return breakdown

    def validate(self, form: PolicyForm, for_submission: bool = False,
                 today: Optional[date] = None) -> Dict[str, str]:
        return eligibility.validate_form(form, self.params, for_submission, today)


_rules: Optional[Dict[str, ProductRule]] = None
_rules_lock = Lock()


def get_rules() -> Dict[str, ProductRule]:
    """Build (once) and return the rule table keyed by product code."""
    global _rules
    if _rules is None:
        with _rules_lock:
            if _rules is None:
                _rules = {
                    code: ProductRule(
                        code=code,
                        name=params["name"],
                        product_type=params["type"],
                        params=params,
                    )
                    for code, params in config_cache.get_product_rules().items()
                }
    return _rules


def reset_rules():
    """Drop the built table so it is rebuilt from the config cache."""
    global _rules
    with _rules_lock:
        _rules = None


def get_rule(code: str) -> Optional[ProductRule]:
    return get_rules().get(code)


def find_rule_for_product(product) -> Optional[ProductRule]:
    """
    Map a stored product to its rule entry.

    Matches on product.code first and falls back to the product name, so
    rows created before codes existed still resolve.
    """
    if product is None:
        return None

    code = getattr(product, "code", None)
    if code and code in get_rules():
        return get_rules()[code]

    name = getattr(product, "name", None)
    for rule in get_rules().values():
        if rule.name == name:
            return rule
    return None
