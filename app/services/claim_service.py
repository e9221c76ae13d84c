"""
Claim Service - filing claims and moving them through review.

Status flow:
    submitted     -> under_review
    under_review  -> investigating | approved | denied
    investigating -> approved | denied
    approved      -> settled
    settled       -> closed
    denied        -> closed
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Claim, ClaimStatus, PolicyStatus, User, UserRole, quantize_money
from app.domain.exceptions import BadRequestError, InvalidStatusTransitionError, NotFoundError
from app.domain.value_objects import ReferencePrefix, generate_reference_number
from app.repositories.claim_repository import ClaimRepository
from app.repositories.policy_repository import PolicyRepository
from app.utils.datetime_utils import today

logger = logging.getLogger(__name__)

CLAIM_TRANSITIONS = {
    ClaimStatus.SUBMITTED: {ClaimStatus.UNDER_REVIEW},
    ClaimStatus.UNDER_REVIEW: {ClaimStatus.INVESTIGATING, ClaimStatus.APPROVED, ClaimStatus.DENIED},
    ClaimStatus.INVESTIGATING: {ClaimStatus.APPROVED, ClaimStatus.DENIED},
    ClaimStatus.APPROVED: {ClaimStatus.SETTLED},
    ClaimStatus.SETTLED: {ClaimStatus.CLOSED},
    ClaimStatus.DENIED: {ClaimStatus.CLOSED},
    ClaimStatus.CLOSED: set(),
}

# Policies that can still receive claims for incidents within their term
CLAIMABLE_POLICY_STATUSES = {PolicyStatus.ACTIVE, PolicyStatus.SUSPENDED, PolicyStatus.EXPIRED, PolicyStatus.CANCELLED}

# Approved amount is fixed once the claim leaves review
AMOUNT_EDITABLE_STATUSES = {ClaimStatus.UNDER_REVIEW, ClaimStatus.INVESTIGATING}


def can_transition(current: ClaimStatus, requested: ClaimStatus) -> bool:
    return requested in CLAIM_TRANSITIONS.get(current, set())


class ClaimService:
    """Service for claims"""

    def __init__(self, db: AsyncSession):
        self._claims = ClaimRepository(db)
        self._policies = PolicyRepository(db)

    async def file_claim(
        self,
        actor: User,
        policy_id: str,
        claim_type: str,
        incident_date: date,
        description: str,
        reported_date: Optional[date] = None,
        **details,
    ) -> Claim:
        """
        File a claim against a policy.

        Raises:
            NotFoundError: If the policy does not exist or belongs to another customer
            BadRequestError: For dates that break the filing rules
        """
        policy = await self._policies.get_visible_to(policy_id, actor)
        if not policy:
            raise NotFoundError("Policy not found")

        if policy.status not in CLAIMABLE_POLICY_STATUSES:
            raise BadRequestError(f"Cannot file a claim against a {policy.status.value} policy")

        reported_date = reported_date or today()
        if reported_date > today():
            raise BadRequestError("Reported date cannot be in the future")
        if incident_date > today():
            raise BadRequestError("Incident date cannot be in the future")
        if incident_date > reported_date:
            raise BadRequestError("Incident date cannot be after the reported date")
        if not (policy.effective_date <= incident_date <= policy.expiration_date):
            raise BadRequestError("Incident date is outside the policy term")
        if policy.cancellation_date and incident_date > policy.cancellation_date:
            raise BadRequestError("Incident occurred after the policy was cancelled")

        claim = Claim(
            claim_number=generate_reference_number(ReferencePrefix.CLAIM),
            status=ClaimStatus.SUBMITTED,
            claim_type=claim_type,
            incident_date=incident_date,
            reported_date=reported_date,
            description=description,
            policy_id=policy.id,
            # Claims belong to the policyholder even when an agent files them
            claimant_id=policy.customer_id,
            deductible_amount=policy.deductible,
            **details,
        )
        await self._claims.add(claim)

        logger.info(f"Filed claim {claim.claim_number} on policy {policy.policy_number}")
        return claim

    async def get_claim(self, actor: User, claim_id: str) -> Claim:
        claim = await self._claims.get_visible_to(claim_id, actor)
        if not claim:
            raise NotFoundError("Claim not found")
        return claim

    async def list_claims(self, actor: User, status: Optional[ClaimStatus] = None) -> List[Claim]:
        criteria = [Claim.status == status] if status else []
        return await self._claims.list_visible_to(actor, *criteria)

    async def list_policy_claims(self, policy_id: str) -> List[Claim]:
        return await self._claims.list_for_policy(policy_id)

    async def update_claim(
        self,
        actor: User,
        claim_id: str,
        status: Optional[ClaimStatus] = None,
        approved_amount: Optional[Decimal] = None,
        settled_amount: Optional[Decimal] = None,
        denial_reason: Optional[str] = None,
        adjuster_notes: Optional[str] = None,
        is_fraudulent: Optional[bool] = None,
        fraud_score: Optional[Decimal] = None,
    ) -> Claim:
        """
        Review a claim (agents and admins).

        Raises:
            InvalidStatusTransitionError: If the status change is not allowed
            BadRequestError: If a required amount or reason is missing
        """
        claim = await self.get_claim(actor, claim_id)

        if approved_amount is not None and claim.status not in AMOUNT_EDITABLE_STATUSES:
            raise BadRequestError(
                f"Approved amount cannot be changed on a {claim.status.value} claim"
            )

        if adjuster_notes is not None:
            claim.adjuster_notes = adjuster_notes
        if is_fraudulent is not None:
            claim.is_fraudulent = is_fraudulent
        if fraud_score is not None:
            claim.fraud_score = fraud_score
        if approved_amount is not None:
            claim.approved_amount = quantize_money(approved_amount)

        if status is not None and status != claim.status:
            self._apply_status(claim, status, settled_amount, denial_reason)

        if claim.adjuster_id is None and actor.role in (UserRole.AGENT, UserRole.ADMIN):
            claim.adjuster_id = actor.id

        await self._claims.save(claim)
        return claim

    def _apply_status(
        self,
        claim: Claim,
        status: ClaimStatus,
        settled_amount: Optional[Decimal],
        denial_reason: Optional[str],
    ) -> None:
        if not can_transition(claim.status, status):
            raise InvalidStatusTransitionError("claim", claim.status.value, status.value)

        if status == ClaimStatus.APPROVED and claim.approved_amount is None:
            raise BadRequestError("Approved amount is required to approve a claim")

        if status == ClaimStatus.DENIED:
            if not denial_reason:
                raise BadRequestError("Denial reason is required to deny a claim")
            claim.denial_reason = denial_reason

        if status == ClaimStatus.SETTLED:
            amount = settled_amount if settled_amount is not None else claim.approved_amount
            if amount is None:
                raise BadRequestError("Settled amount is required to settle a claim")
            claim.settled_amount = quantize_money(amount)

        if status == ClaimStatus.CLOSED:
            claim.closed_date = today()

        logger.info(f"Claim {claim.claim_number}: {claim.status.value} -> {status.value}")
        claim.status = status
