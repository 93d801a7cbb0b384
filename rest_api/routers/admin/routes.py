"""
Admin router.
Reviews staff sign-ups: lists the pending ones and approves or rejects
accounts. Rejecting an approved account revokes its sign-in.
"""

from fastapi import APIRouter, Depends

from shared.config.constants import Roles
from shared.utils.schemas import ApprovalRequest, StaffAccountOutput
from rest_api.core.dependencies import get_identity_provider, identity_with_role
from rest_api.services.identity import IdentityProvider, SessionIdentity


router = APIRouter(prefix="/api/admin", tags=["admin"])

admin_identity = identity_with_role(Roles.ADMIN)


@router.get("/staff/pending", response_model=list[StaffAccountOutput])
def list_pending_staff(
    identity: SessionIdentity = Depends(admin_identity),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> list[StaffAccountOutput]:
    return [StaffAccountOutput.model_validate(p) for p in identity_provider.pending_staff(identity)]


@router.put("/staff/{user_id}/approval", response_model=StaffAccountOutput)
def set_staff_approval(
    user_id: str,
    body: ApprovalRequest,
    identity: SessionIdentity = Depends(admin_identity),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> StaffAccountOutput:
    profile = identity_provider.set_approval(user_id, body.approved, identity)
    return StaffAccountOutput.model_validate(profile)
