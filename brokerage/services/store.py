"""
Data-access collaborator for products, profiles and policies.

Wraps a SQLModel session; every database failure surfaces as a StoreError
whose message can be shown to the user as is.
"""

import json
import logging
from typing import Dict, Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from brokerage.errors import StoreError
from brokerage.models import InsuranceProduct, Policy, PolicyDocument, Profile, RejectionDetail, utc_now

logger = logging.getLogger("brokerage")

# Payload keys stored as JSON text columns
JSON_COLUMNS = {
    "beneficiaries": "beneficiaries_json",
    "dependents_details": "dependents_details_json",
}


def _to_columns(payload: Dict[str, Any]) -> Dict[str, Any]:
    columns = {}
    for key, value in payload.items():
        if key in JSON_COLUMNS:
            columns[JSON_COLUMNS[key]] = json.dumps(list(value)) if value is not None else None
        else:
            columns[key] = value
    return columns


def policy_product_data(policy: Policy) -> Dict[str, Any]:
    """Product-specific payload of a stored policy, JSON columns decoded."""
    data = {}
    for key in (
        "coverage_amount", "ad_d_included", "ad_d_coverage", "age_at_inscription", "num_beneficiaries",
        "deductible", "coinsurance", "max_annual", "has_dental", "has_dental_basic", "has_dental_premium",
        "has_vision", "has_vision_basic", "has_vision_full", "wellness_rebate", "num_dependents",
    ):
        value = getattr(policy, key)
        if value is not None:
            data[key] = value
    for key, column in JSON_COLUMNS.items():
        raw = getattr(policy, column)
        if raw is not None:
            data[key] = json.loads(raw)
    return data


def product_coverage_details(product: InsuranceProduct) -> Dict[str, Any]:
    return json.loads(product.coverage_details_json or "{}")


class PolicyStore:
    """SQLModel-backed store used by the policy services."""

    def __init__(self, session: Session):
        self.session = session

    def _commit(self, action: str):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Store operation failed | action={action} | error={e}")
            raise StoreError(f"No se pudo {action}: {e.__class__.__name__}") from e

    # Products
    def get_active_insurance_products(self) -> List[InsuranceProduct]:
        return self.session.query(InsuranceProduct).filter(
            InsuranceProduct.is_active == True  # noqa: E712
        ).order_by(InsuranceProduct.name).all()

    def get_insurance_product_by_id(self, product_id: str) -> Optional[InsuranceProduct]:
        return self.session.get(InsuranceProduct, product_id)

    def get_insurance_product_by_code(self, code: str) -> Optional[InsuranceProduct]:
        return self.session.query(InsuranceProduct).filter(InsuranceProduct.code == code).first()

    def create_insurance_product(self, data: Dict[str, Any]) -> InsuranceProduct:
        data = dict(data)
        coverage_details = data.pop("coverage_details", {}) or {}
        product = InsuranceProduct(**data, coverage_details_json=json.dumps(coverage_details))
        self.session.add(product)
        self._commit("crear el producto")
        self.session.refresh(product)
        return product

    def update_insurance_product(self, product_id: str, changes: Dict[str, Any]) -> InsuranceProduct:
        product = self.get_insurance_product_by_id(product_id)
        if product is None:
            raise StoreError("Producto no encontrado.")

        for key, value in changes.items():
            if key == "coverage_details":
                product.coverage_details_json = json.dumps(value or {})
            else:
                setattr(product, key, value)
        product.updated_at = utc_now()

        self.session.add(product)
        self._commit("actualizar el producto")
        self.session.refresh(product)
        return product

    # Profiles
    def get_all_client_profiles(self) -> List[Profile]:
        return self._profiles_with_role("client")

    def get_all_agent_profiles(self) -> List[Profile]:
        return self._profiles_with_role("agent")

    def _profiles_with_role(self, role: str) -> List[Profile]:
        return self.session.query(Profile).filter(
            Profile.role == role,
            Profile.is_active == True  # noqa: E712
        ).order_by(Profile.full_name).all()

    # Policies
    def create_policy(self, payload: Dict[str, Any]) -> Policy:
        """
        Insert a policy from a creation payload.

        Raises:
            StoreError: on any database failure (e.g. duplicate policy_number)
        """
        policy = Policy(**_to_columns(payload))
        self.session.add(policy)
        self._commit("crear la póliza")
        self.session.refresh(policy)
        return policy

    def update_policy(self, policy_id: str, partial: Dict[str, Any]) -> Policy:
        policy = self.get_policy_by_id(policy_id)
        if policy is None:
            raise StoreError("Póliza no encontrada.")

        for key, value in _to_columns(partial).items():
            setattr(policy, key, value)
        policy.updated_at = utc_now()

        self.session.add(policy)
        self._commit("actualizar la póliza")
        self.session.refresh(policy)
        return policy

    def get_policy_by_id(self, policy_id: str) -> Optional[Policy]:
        return self.session.get(Policy, policy_id)

    def list_policies(
        self,
        agent_id: Optional[str] = None,
        client_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Policy]:
        query = self.session.query(Policy)
        if agent_id:
            query = query.filter(Policy.agent_id == agent_id)
        if client_id:
            query = query.filter(Policy.client_id == client_id)
        if status:
            query = query.filter(Policy.status == status)
        return query.order_by(Policy.created_at.desc()).all()

    def delete_policy(self, policy_id: str) -> None:
        """Delete a policy with its documents and rejection detail."""
        policy = self.get_policy_by_id(policy_id)
        if policy is None:
            raise StoreError("Póliza no encontrada.")

        self.session.query(PolicyDocument).filter(PolicyDocument.policy_id == policy_id).delete()
        self.session.query(RejectionDetail).filter(RejectionDetail.policy_id == policy_id).delete()
        self.session.delete(policy)
        self._commit("eliminar la póliza")

    # Rejections
    def add_rejection_detail(
        self,
        policy_id: str,
        reasons: List[str],
        comments: Dict[str, str],
        rejected_by: Optional[str]
    ) -> RejectionDetail:
        detail = RejectionDetail(
            policy_id=policy_id,
            reasons_json=json.dumps(reasons),
            comments_json=json.dumps(comments),
            rejected_by=rejected_by
        )
        self.session.add(detail)
        self._commit("registrar el rechazo")
        self.session.refresh(detail)
        return detail

    def get_rejection_detail(self, policy_id: str) -> Optional[RejectionDetail]:
        return self.session.query(RejectionDetail).filter(RejectionDetail.policy_id == policy_id).first()

    # Documents (metadata only)
    def add_policy_document(self, policy_id: str, document_name: str, file_url: str) -> PolicyDocument:
        document = PolicyDocument(policy_id=policy_id, document_name=document_name, file_url=file_url)
        self.session.add(document)
        self._commit("registrar el documento")
        self.session.refresh(document)
        return document

    def get_policy_documents(self, policy_id: str) -> List[PolicyDocument]:
        return self.session.query(PolicyDocument).filter(PolicyDocument.policy_id == policy_id).all()
