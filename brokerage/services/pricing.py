"""
Pricing service for calculating policy premiums.

Every product premium is the sum of additive monthly components declared in
products.yaml, floored at the product minimum and then scaled by the payment
frequency:

    premium = max(base + member increments + rider increments + product terms, minimum)
              * frequency_multiplier
"""

from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR
from typing import Dict, Any, Tuple, Optional

FREQUENCY_MULTIPLIERS = {
    "monthly": 1,
    "quarterly": 3,
    "annually": 12,
}

CENTS = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Convert a float/int/str amount to Decimal without float noise."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value) -> Decimal:
    """Round an amount to cents."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def get_frequency_multiplier(frequency: str) -> int:
    if frequency not in FREQUENCY_MULTIPLIERS:
        raise ValueError(f"Unknown payment frequency: {frequency}")
    return FREQUENCY_MULTIPLIERS[frequency]


def get_age_factor(age: Optional[int], age_factors: list) -> Decimal:
    """
    Step function of age.

    age_factors is an ordered list of {max_age, factor}; the first entry whose
    max_age is null or >= age wins.
    """
    age = age or 0
    for band in age_factors:
        if band.get("max_age") is None or age <= band["max_age"]:
            return to_decimal(band["factor"])
    return Decimal("1")


def _dependents(form):
    return form.dependents_details or ()


def calculate_monthly_components(form, premium_params: Dict[str, Any]) -> Dict[str, Decimal]:
    """
    Evaluate each monthly premium component present in premium_params.

    Args:
        form: PolicyForm snapshot
        premium_params: the `premium` section of a product rule entry

    Returns:
        Ordered mapping of component name to its monthly amount
    """
    components: Dict[str, Decimal] = {}

    if "base" in premium_params:
        components["base"] = to_decimal(premium_params["base"])

    coverage = to_decimal(form.coverage_amount)

    # Coverage-rated products (AD&D): coverage * rate * ageFactor / 12
    if "coverage_rate" in premium_params:
        rating = premium_params["coverage_rate"]
        age_factor = get_age_factor(form.age_at_inscription, rating.get("age_factors", []))
        components["coverage"] = coverage * to_decimal(rating["rate"]) * age_factor / 12

    # Stepped coverage increments: +amount per full step above start
    if "coverage_steps" in premium_params:
        steps = premium_params["coverage_steps"]
        start = to_decimal(steps["start"])
        if coverage > start:
            full_steps = ((coverage - start) / to_decimal(steps["step"])).to_integral_value(rounding=ROUND_FLOOR)
            components["coverage_steps"] = full_steps * to_decimal(steps["amount"])

    if "ad_d_rate" in premium_params and form.ad_d_included and form.ad_d_coverage:
        components["ad_d"] = to_decimal(form.ad_d_coverage) * to_decimal(premium_params["ad_d_rate"])

    if "age_surcharge" in premium_params:
        surcharge = premium_params["age_surcharge"]
        years_over = max((form.age_at_inscription or 0) - surcharge["over"], 0)
        if years_over:
            components["age_surcharge"] = to_decimal(years_over) * to_decimal(surcharge["per_year"])

    # Higher deductible lowers the premium
    if "deductible_credit" in premium_params and form.deductible is not None:
        credit = premium_params["deductible_credit"]
        extra = to_decimal(form.deductible) - to_decimal(credit["start"])
        if extra > 0:
            components["deductible_credit"] = -extra * to_decimal(credit["rate"])

    member_count = max(form.num_dependents or 0, 0)

    if "per_member" in premium_params and member_count:
        components["members"] = member_count * to_decimal(premium_params["per_member"])

    if "per_relationship" in premium_params:
        for relationship, amount in premium_params["per_relationship"].items():
            count = sum(1 for d in _dependents(form) if d.relationship == relationship)
            if count:
                components[f"{relationship}_members"] = count * to_decimal(amount)

    if "any_relationship" in premium_params:
        for relationship, amount in premium_params["any_relationship"].items():
            if any(d.relationship == relationship for d in _dependents(form)):
                components[f"{relationship}_surcharge"] = to_decimal(amount)

    for flag, amount in premium_params.get("riders", {}).items():
        if getattr(form, flag, False):
            components[flag] = to_decimal(amount)

    for flag, amount in premium_params.get("per_member_riders", {}).items():
        if getattr(form, flag, False) and member_count:
            components[f"{flag}_members"] = member_count * to_decimal(amount)

    return components


def calculate_monthly_premium(form, premium_params: Dict[str, Any]) -> Decimal:
    """Monthly premium floored at the product minimum, in cents."""
    components = calculate_monthly_components(form, premium_params)
    total = sum(components.values(), Decimal("0"))
    minimum = to_decimal(premium_params.get("minimum", 0))
    return to_money(max(total, minimum))


def calculate_premium(
    form,
    premium_params: Dict[str, Any],
    frequency: Optional[str] = None
) -> Tuple[Decimal, Dict[str, Any]]:
    """
    Calculate the premium for the form's (or the given) payment frequency.

    The monthly figure is rounded to cents before scaling, so the quarterly
    and annual premiums are exact multiples of it.

    Args:
        form: PolicyForm snapshot
        premium_params: the `premium` section of a product rule entry
        frequency: overrides form.payment_frequency when given

    Returns:
        Tuple of (premium, breakdown_dict)
    """
    frequency = frequency or form.payment_frequency
    multiplier = get_frequency_multiplier(frequency)

    components = calculate_monthly_components(form, premium_params)
    monthly = calculate_monthly_premium(form, premium_params)
    premium = monthly * multiplier

    breakdown = {name: to_money(amount) for name, amount in components.items()}
    breakdown["minimum"] = to_money(premium_params.get("minimum", 0))
    breakdown["monthly"] = monthly
    breakdown["frequency_multiplier"] = Decimal(multiplier)

    return premium, breakdown
