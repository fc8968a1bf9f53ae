"""
Beneficiary and dependent collection manager.

Keeps the member arrays of a PolicyForm in sync with their declared counts.
Every function returns new tuples/forms; nothing is mutated in place.
"""

from typing import Any, Callable, NamedTuple, Optional, Sequence

from brokerage.schemas import Beneficiary, Dependent, PolicyForm


class MemberSummary(NamedTuple):
    count: int
    percentage_sum: float
    spouse_count: int
    child_count: int


def resize(items: Sequence, new_count: int, factory: Callable[[], Any]) -> tuple:
    """
    Truncate or pad a member collection to new_count entries.

    Entries are kept by index; padding uses blank records from factory.
    """
    new_count = max(int(new_count), 0)
    items = tuple(items)
    if new_count <= len(items):
        return items[:new_count]
    return items + tuple(factory() for _ in range(new_count - len(items)))


def update_member(items: Sequence, index: int, field: str, value: Any) -> tuple:
    """
    Replace one field of the entry at index.

    Moving relationship away from `other` drops the custom label.
    """
    items = tuple(items)
    if index < 0 or index >= len(items):
        raise IndexError(f"Member index {index} out of range for {len(items)} entries")

    update = {field: value}
    if field == "relationship" and value != "other":
        update["custom_relationship"] = None

    member = items[index].model_copy(update=update)
    return items[:index] + (member,) + items[index + 1:]


def summarize(items: Sequence) -> MemberSummary:
    percentage_sum = 0.0
    spouse_count = 0
    child_count = 0
    for item in items:
        percentage_sum += getattr(item, "percentage", 0) or 0
        if item.relationship == "spouse":
            spouse_count += 1
        elif item.relationship == "child":
            child_count += 1
    return MemberSummary(len(items), percentage_sum, spouse_count, child_count)


def _clamp(count: int, bounds: Optional[dict]) -> int:
    count = max(int(count), 0)
    if not bounds:
        return count
    return max(bounds.get("min", 0), min(count, bounds.get("max", count)))


def set_beneficiary_count(form: PolicyForm, count: int, rule=None) -> PolicyForm:
    """
    Set num_beneficiaries and resize the beneficiaries array in one step.

    Args:
        form: Current form state
        count: Requested count
        rule: ProductRule whose declared bounds clamp the count (optional)

    Returns:
        New form with num_beneficiaries == len(beneficiaries)
    """
    bounds = rule.beneficiary_bounds if rule is not None else None
    count = _clamp(count, bounds)
    return form.model_copy(update={
        "num_beneficiaries": count,
        "beneficiaries": resize(form.beneficiaries, count, Beneficiary),
    })


def set_dependent_count(form: PolicyForm, count: int, rule=None) -> PolicyForm:
    """
    Set num_dependents and resize dependents_details in one step.

    Args:
        form: Current form state
        count: Requested count
        rule: ProductRule whose declared bounds clamp the count (optional)

    Returns:
        New form with num_dependents == len(dependents_details)
    """
    bounds = rule.dependent_bounds if rule is not None else None
    count = _clamp(count, bounds)
    return form.model_copy(update={
        "num_dependents": count,
        "dependents_details": resize(form.dependents_details, count, Dependent),
    })


def edit_beneficiary(form: PolicyForm, index: int, field: str, value: Any) -> PolicyForm:
    return form.model_copy(update={
        "beneficiaries": update_member(form.beneficiaries, index, field, value),
    })


def edit_dependent(form: PolicyForm, index: int, field: str, value: Any) -> PolicyForm:
    return form.model_copy(update={
        "dependents_details": update_member(form.dependents_details, index, field, value),
    })


def edit_field(form: PolicyForm, field: str, value: Any, rule=None) -> PolicyForm:
    """
    Generic scalar edit with the coupled-field rules applied.

    - Products whose AD&D mirrors the life coverage keep
      ad_d_coverage == coverage_amount.
    - Unticking ad_d_included zeroes ad_d_coverage, unless AD&D is always
      included for the product.
    - Count fields are routed through the resize helpers.
    """
    if field == "num_beneficiaries":
        return set_beneficiary_count(form, value, rule)
    if field == "num_dependents":
        return set_dependent_count(form, value, rule)
    if field not in PolicyForm.model_fields:
        raise KeyError(f"Unknown form field: {field}")

    ad_d_params = rule.params.get("ad_d", {}) if rule is not None else {}
    update = {field: value}

    if field == "ad_d_included":
        if ad_d_params.get("always_included"):
            update[field] = True
        elif not value:
            update["ad_d_coverage"] = 0

    if field == "coverage_amount" and ad_d_params.get("mirrors_coverage"):
        update["ad_d_coverage"] = value

    # Re-run field validation (type coercion) on the edited values
    return PolicyForm.model_validate({**form.model_dump(), **update})

