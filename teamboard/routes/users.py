from __future__ import annotations

from fastapi import APIRouter, Depends

from teamboard.auth.identity import IdentityClaim
from teamboard.dependencies.auth import require_access_session
from teamboard.schemas.auth import IdentityOut

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=IdentityOut)
def get_current_identity(identity: IdentityClaim = Depends(require_access_session)):
    return identity.to_claims()
