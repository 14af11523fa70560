from fastapi import Depends, HTTPException, Header
from sqlalchemy.orm import Session
from roomsplit.db.database import get_db
from roomsplit.models.households import Household
from roomsplit.services.auth.jwt_handler import get_current_user
from roomsplit.services.household_service import require_household_member


def get_current_user_id(access_token: str = Header(..., description="Access token (without Bearer)")):
    """Extract current user ID from JWT token"""
    if access_token.startswith("Bearer "):
        access_token = access_token.replace("Bearer ", "")
    user_id = get_current_user(access_token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_id


def get_member_household(
    household_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> Household:
    """Resolve the household in the path, for members only"""
    return require_household_member(db, household_id, user_id)
