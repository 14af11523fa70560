import logging
import secrets
import string
from sqlalchemy.orm import Session
from sqlalchemy import and_
from fastapi import HTTPException
from typing import List, Optional, Tuple
from roomsplit.config import settings
from roomsplit.models.households import Household, HouseholdMember, MemberRole, Roommate
from roomsplit.schemas.household_schema import HouseholdCreate

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_invite_code(db: Session) -> str:
    """Generate an upper-case alphanumeric invite code not used by any household"""
    while True:
        code = "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(settings.invite_code_length))
        if not db.query(Household).filter(Household.invite_code == code).first():
            return code


def create_household(db: Session, household_data: HouseholdCreate, created_by: str) -> Household:
    """Create a household; the creator joins as admin"""
    household = Household(
        name=household_data.name.strip(),
        created_by=created_by,
        invite_code=generate_invite_code(db)
    )
    db.add(household)
    db.commit()
    db.refresh(household)

    add_member_to_household(db, household.id, created_by, role=MemberRole.admin)
    logger.info(f"Household {household.id} created by {created_by}")
    return household


def get_household(db: Session, household_id: str) -> Optional[Household]:
    """Get a household by ID"""
    return db.query(Household).filter(Household.id == household_id).first()


def get_household_by_invite_code(db: Session, invite_code: str) -> Optional[Household]:
    return db.query(Household).filter(Household.invite_code == invite_code.strip()).first()


def get_user_households(db: Session, user_id: str) -> List[Household]:
    """Get all households the user belongs to"""
    return db.query(Household).join(HouseholdMember).filter(HouseholdMember.user_id == user_id).all()


def join_household(db: Session, invite_code: str, user_id: str) -> Household:
    """Join a household with its invite code; joining twice is a no-op"""
    household = get_household_by_invite_code(db, invite_code)
    if not household:
        raise HTTPException(status_code=404, detail="Invalid invite code")

    if is_household_member(db, household.id, user_id):
        logger.info(f"User {user_id} is already a member of household {household.id}")
        return household

    add_member_to_household(db, household.id, user_id)
    logger.info(f"User {user_id} joined household {household.id}")
    return household


def get_invite_code(db: Session, household_id: str, user_id: str) -> str:
    household = require_household_member(db, household_id, user_id)
    return household.invite_code


def add_member_to_household(db: Session, household_id: str, user_id: str,
                            role: MemberRole = MemberRole.member) -> HouseholdMember:
    """Add a user account to a household"""
    if get_membership(db, household_id, user_id):
        raise HTTPException(status_code=400, detail="User is already a member of this household")

    member = HouseholdMember(
        household_id=household_id,
        user_id=user_id,
        role=role
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def get_membership(db: Session, household_id: str, user_id: str) -> Optional[HouseholdMember]:
    return db.query(HouseholdMember).filter(
        and_(HouseholdMember.household_id == household_id, HouseholdMember.user_id == user_id)
    ).first()


def is_household_admin(db: Session, household_id: str, user_id: str) -> bool:
    """Check if user is admin of the household"""
    member = get_membership(db, household_id, user_id)
    return member is not None and member.role == MemberRole.admin


def is_household_member(db: Session, household_id: str, user_id: str) -> bool:
    """Check if user is member of the household"""
    return get_membership(db, household_id, user_id) is not None


def require_household_member(db: Session, household_id: str, user_id: str) -> Household:
    """Return the household, or raise 404/403 when it is missing or the user is not a member"""
    household = get_household(db, household_id)
    if not household:
        raise HTTPException(status_code=404, detail="Household not found")
    if not is_household_member(db, household_id, user_id):
        raise HTTPException(status_code=403, detail="You are not a member of this household")
    return household


def require_household_admin(db: Session, household_id: str, user_id: str) -> Household:
    household = require_household_member(db, household_id, user_id)
    if not is_household_admin(db, household_id, user_id):
        raise HTTPException(status_code=403, detail="Only household admins can do this")
    return household


def get_household_members(db: Session, household_id: str) -> List[HouseholdMember]:
    """Get all user memberships of a household"""
    return db.query(HouseholdMember).filter(HouseholdMember.household_id == household_id).all()


def _get_other_membership(db: Session, household_id: str, target_user_id: str,
                          admin_user_id: str) -> HouseholdMember:
    require_household_admin(db, household_id, admin_user_id)

    if target_user_id == admin_user_id:
        raise HTTPException(status_code=400, detail="You cannot change your own membership")

    member = get_membership(db, household_id, target_user_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


def toggle_member_role(db: Session, household_id: str, target_user_id: str, admin_user_id: str) -> HouseholdMember:
    """Switch a member between admin and member (admin only, never on yourself)"""
    member = _get_other_membership(db, household_id, target_user_id, admin_user_id)

    member.role = MemberRole.member if member.role == MemberRole.admin else MemberRole.admin
    db.commit()
    db.refresh(member)
    logger.info(f"User {target_user_id} is now {member.role.value} of household {household_id}")
    return member


def remove_member(db: Session, household_id: str, target_user_id: str, admin_user_id: str):
    """Remove a user from a household (admin only, never yourself)"""
    member = _get_other_membership(db, household_id, target_user_id, admin_user_id)

    db.delete(member)
    db.commit()
    logger.info(f"User {target_user_id} removed from household {household_id}")


def link_member_to_roommate(db: Session, household_id: str, target_user_id: str,
                            roommate_id: Optional[str], admin_user_id: str) -> HouseholdMember:
    """Link a user account to a roommate of the same household, or unlink with None"""
    require_household_admin(db, household_id, admin_user_id)

    member = get_membership(db, household_id, target_user_id)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    if roommate_id is not None:
        roommate = db.query(Roommate).filter(
            and_(Roommate.id == roommate_id, Roommate.household_id == household_id)
        ).first()
        if not roommate:
            raise HTTPException(status_code=404, detail="Roommate not found")

    member.linked_roommate_id = roommate_id
    db.commit()
    db.refresh(member)
    return member


def membership_summary(db: Session, household_id: str, user_id: str) -> Tuple[bool, Optional[str]]:
    """(is_admin, linked_roommate_id) for the user in the household"""
    member = get_membership(db, household_id, user_id)
    if not member:
        return False, None
    return member.role == MemberRole.admin, member.linked_roommate_id
