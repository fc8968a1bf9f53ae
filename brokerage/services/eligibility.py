"""
Eligibility checks for policy forms.

Evaluates the structural constraints declared in products.yaml against a
PolicyForm snapshot and returns a field -> message map. Checks never raise;
an empty map means the form is valid. When several checks fail on the same
field only the first message is kept.
"""

import math
from datetime import date
from typing import Dict, Any, Optional

from brokerage.schemas import PolicyForm, RELATIONSHIPS
from brokerage.services.members import summarize
from brokerage.services.pricing import calculate_premium, calculate_monthly_premium, to_decimal
from brokerage.services.validation import is_alpha, is_iso_date

FieldErrors = Dict[str, str]

RELATIONSHIP_LABELS = {
    "spouse": "cónyuge",
    "child": "hijo(a)",
    "parent": "padre/madre",
    "sibling": "hermano(a)",
    "other": "otro",
}


def _add(errors: FieldErrors, key: str, message: str):
    errors.setdefault(key, message)


def age_on(birth_date: str, today: str) -> int:
    """Whole years between two YYYY-MM-DD strings, from their parts."""
    by, bm, bd = (int(part) for part in birth_date.split("-"))
    ty, tm, td = (int(part) for part in today.split("-"))
    return ty - by - ((tm, td) < (bm, bd))


def _format_amount(value) -> str:
    value = float(value)
    if value.is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def validate_form(
    form: PolicyForm,
    params: Dict[str, Any],
    for_submission: bool = False,
    today: Optional[date] = None
) -> FieldErrors:
    """
    Run every check declared for a product.

    Args:
        form: PolicyForm snapshot
        params: product entry from products.yaml
        for_submission: also require completeness (ids, dates, member data)
        today: reference date for past/future and age checks

    Returns:
        Field errors, empty when the form is valid
    """
    today_str = (today or date.today()).isoformat()
    errors: FieldErrors = {}

    if for_submission:
        _check_required(form, errors)
    finite = _check_finite(form, errors)
    _check_dates(form, params, today_str, errors)
    _check_fields(form, params, for_submission, errors)
    _check_ad_d(form, params, errors)
    _check_beneficiaries(form, params, for_submission, errors)
    _check_dependents(form, params, for_submission, today_str, errors)
    if finite:
        _check_premium(form, params, errors)

    return errors


def _check_required(form: PolicyForm, errors: FieldErrors):
    if not form.client_id:
        _add(errors, "client_id", "Por favor, selecciona un cliente.")
    if not form.product_id:
        _add(errors, "product_id", "El producto de seguro no está seleccionado.")
    if not form.start_date:
        _add(errors, "start_date", "La fecha de inicio es requerida.")
    if not form.end_date:
        _add(errors, "end_date", "La fecha de fin es requerida.")


# Amounts that feed pricing
_NUMERIC_FIELDS = (
    "coverage_amount", "ad_d_coverage", "deductible", "coinsurance",
    "max_annual", "wellness_rebate", "premium_amount",
)


def _check_finite(form: PolicyForm, errors: FieldErrors) -> bool:
    finite = True
    for field in _NUMERIC_FIELDS:
        value = getattr(form, field)
        if value is not None and not math.isfinite(value):
            _add(errors, field, "Ingrese un valor numérico válido.")
            finite = False
    for index, beneficiary in enumerate(form.beneficiaries, start=1):
        if not math.isfinite(beneficiary.percentage):
            _add(errors, "beneficiaries", f"El porcentaje del beneficiario {index} no es un número válido.")
            finite = False
    return finite


def _check_dates(form: PolicyForm, params: Dict[str, Any], today: str, errors: FieldErrors):
    start_ok = end_ok = False

    if form.start_date:
        start_ok = is_iso_date(form.start_date)
        if not start_ok:
            _add(errors, "start_date", "La fecha de inicio debe tener el formato AAAA-MM-DD.")
    if form.end_date:
        end_ok = is_iso_date(form.end_date)
        if not end_ok:
            _add(errors, "end_date", "La fecha de fin debe tener el formato AAAA-MM-DD.")

    # ISO strings order lexicographically
    if start_ok and end_ok and form.end_date <= form.start_date:
        _add(errors, "end_date", "La fecha de fin debe ser posterior a la fecha de inicio.")

    if params.get("start_not_in_past") and start_ok and form.start_date < today:
        _add(errors, "start_date", "La fecha de inicio no puede ser anterior a la fecha actual.")


def _check_fields(form: PolicyForm, params: Dict[str, Any], for_submission: bool, errors: FieldErrors):
    for field, bounds in params.get("fields", {}).items():
        value = getattr(form, field)
        message = bounds["message"]

        if value is None:
            if for_submission:
                _add(errors, field, message)
            continue

        if "equals" in bounds and to_decimal(value) != to_decimal(bounds["equals"]):
            _add(errors, field, message)
        if "min" in bounds and value < bounds["min"]:
            _add(errors, field, message)
        if "max" in bounds and value > bounds["max"]:
            _add(errors, field, message)


def _check_ad_d(form: PolicyForm, params: Dict[str, Any], errors: FieldErrors):
    ad_d = params.get("ad_d")
    if not ad_d:
        return

    if ad_d.get("always_included") and not form.ad_d_included:
        _add(errors, "ad_d_included", "El AD&D siempre está incluido en este producto.")

    if ad_d.get("mirrors_coverage"):
        if to_decimal(form.ad_d_coverage) != to_decimal(form.coverage_amount):
            _add(errors, "ad_d_coverage", "La cobertura AD&D debe ser igual a la cobertura de vida.")
        return

    # Optional AD&D rider bounded by a multiple of the life coverage
    if form.ad_d_included and "max_coverage_multiple" in ad_d:
        upper = (form.coverage_amount or 0) * ad_d["max_coverage_multiple"]
        lower = ad_d.get("min", 1)
        ad_d_coverage = form.ad_d_coverage or 0
        if ad_d_coverage < lower or ad_d_coverage > upper:
            _add(
                errors,
                "ad_d_coverage",
                f"Si incluye AD&D, su cobertura debe estar entre ${_format_amount(lower)} y ${_format_amount(upper)}."
            )


def _check_relationship(member, label: str, index: int, allowed, errors: FieldErrors, key: str):
    if not member.relationship:
        return
    if member.relationship not in allowed:
        names = " o ".join(RELATIONSHIP_LABELS[r] for r in allowed)
        _add(errors, key, f"El parentesco del {label} {index} debe ser {names}.")


def _check_member_complete(member, label: str, index: int, errors: FieldErrors, key: str,
                           needs_birth_date: bool = False):
    incomplete = not member.name or not member.relationship
    if member.relationship == "other" and not member.custom_relationship:
        incomplete = True
    if needs_birth_date and not member.birth_date:
        incomplete = True

    if incomplete:
        _add(errors, key, f"Completa todos los datos del {label} {index}.")
    elif not is_alpha(member.name):
        _add(errors, key, f"El nombre del {label} {index} solo puede contener letras y espacios.")


def _check_beneficiaries(form: PolicyForm, params: Dict[str, Any], for_submission: bool, errors: FieldErrors):
    bounds = params.get("beneficiaries")
    if not bounds:
        return

    count = form.num_beneficiaries
    if count < bounds["min"] or count > bounds["max"]:
        _add(
            errors,
            "num_beneficiaries",
            f"El número de beneficiarios debe estar entre {bounds['min']} y {bounds['max']}."
        )

    if len(form.beneficiaries) != count:
        _add(errors, "beneficiaries",
             "Hay un desajuste entre el número de beneficiarios ingresados y el número declarado.")

    for index, beneficiary in enumerate(form.beneficiaries, start=1):
        if beneficiary.percentage <= 0 or beneficiary.percentage > 100:
            _add(errors, "beneficiaries",
                 f"El porcentaje del beneficiario {index} debe ser mayor que 0 y no mayor que 100.")
        _check_relationship(beneficiary, "beneficiario", index, RELATIONSHIPS, errors, "beneficiaries")
        if for_submission:
            _check_member_complete(beneficiary, "beneficiario", index, errors, "beneficiaries")

    summary = summarize(form.beneficiaries)
    if abs(summary.percentage_sum - 100) > 0.01:
        _add(errors, "beneficiaries", "La suma de porcentajes de todos los beneficiarios debe ser 100%.")


def _check_dependents(form: PolicyForm, params: Dict[str, Any], for_submission: bool, today: str,
                      errors: FieldErrors):
    bounds = params.get("dependents")
    if not bounds:
        return

    count = form.num_dependents
    count_message = bounds.get(
        "count_message",
        f"El número de dependientes debe estar entre {bounds['min']} y {bounds['max']}."
    )
    if count < bounds["min"] or count > bounds["max"]:
        _add(errors, "num_dependents", count_message)
    if for_submission and count < bounds.get("min_on_submit", 0):
        _add(errors, "num_dependents", count_message)

    if len(form.dependents_details) != count:
        _add(errors, "dependents",
             "El número de dependientes no coincide con los detalles ingresados. Por favor, verifique.")

    summary = summarize(form.dependents_details)
    if "max_spouses" in bounds and summary.spouse_count > bounds["max_spouses"]:
        _add(errors, "dependents", f"Solo se permite {bounds['max_spouses']} cónyuge.")
    if "max_children" in bounds and summary.child_count > bounds["max_children"]:
        _add(errors, "dependents", f"Solo se permiten hasta {bounds['max_children']} hijos.")

    allowed = tuple(bounds.get("relationships", RELATIONSHIPS))
    for index, dependent in enumerate(form.dependents_details, start=1):
        _check_relationship(dependent, "dependiente", index, allowed, errors, "dependents")

        if dependent.birth_date:
            if not is_iso_date(dependent.birth_date):
                _add(errors, "dependents",
                     f"La fecha de nacimiento del dependiente {index} debe tener el formato AAAA-MM-DD.")
            elif dependent.birth_date > today:
                _add(errors, "dependents",
                     f"La fecha de nacimiento del dependiente {index} no puede ser en el futuro.")
            elif (
                "max_child_age" in bounds
                and dependent.relationship == "child"
                and age_on(dependent.birth_date, today) > bounds["max_child_age"]
            ):
                _add(errors, "dependents",
                     f'El hijo(a) "{dependent.name}" excede la edad máxima de {bounds["max_child_age"]} años.')

        if for_submission:
            _check_member_complete(dependent, "dependiente", index, errors, "dependents", needs_birth_date=True)


def _check_premium(form: PolicyForm, params: Dict[str, Any], errors: FieldErrors):
    premium_params = params.get("premium", {})

    # User-entered premium may only raise the computed floor
    if premium_params.get("editable") and form.premium_amount is not None:
        computed, _ = calculate_premium(form, premium_params)
        if form.premium_amount < computed:
            _add(errors, "premium_amount", f"La prima ingresada debe ser al menos ${computed:.2f}.")

    premium_range = premium_params.get("range")
    if premium_range:
        monthly = calculate_monthly_premium(form, premium_params)
        if monthly < to_decimal(premium_range["min"]) or monthly > to_decimal(premium_range["max"]):
            _add(errors, "premium_amount", premium_range["message"])
