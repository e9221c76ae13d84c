"""
Claim repository for data access.
"""
from typing import List

from sqlalchemy import select

from app.db.models import Claim
from app.repositories.base import SQLAlchemyRepository


class ClaimRepository(SQLAlchemyRepository[Claim]):
    """Repository for Claim entity"""

    model = Claim
    owner_column = "claimant_id"
    conflict_message = "Claim number already exists"

    async def list_for_policy(self, policy_id: str) -> List[Claim]:
        result = await self._db.execute(
            select(Claim).where(Claim.policy_id == policy_id).order_by(Claim.created_at.desc())
        )
        return list(result.scalars().all())
