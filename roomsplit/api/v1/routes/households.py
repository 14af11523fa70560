from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from roomsplit.db.database import get_db
from roomsplit.api.v1.dependencies import get_current_user_id, get_member_household
from roomsplit.models.households import Household
from roomsplit.services.household_service import (
    create_household, get_user_households, join_household, get_household_members,
    toggle_member_role, remove_member, link_member_to_roommate
)
from roomsplit.services.roommate_service import (
    get_rooms, add_room, remove_room, get_roommates, add_roommate, remove_roommate
)
from roomsplit.schemas.household_schema import (
    HouseholdCreate, HouseholdJoin, HouseholdOut, InviteCodeOut, HouseholdMemberOut,
    MemberLink, RoomCreate, RoomOut, RoommateCreate, RoommateOut
)

router = APIRouter(prefix="/households", tags=["households"])


@router.post("/", response_model=HouseholdOut)
def create_new_household(
    household_data: HouseholdCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new household"""
    return create_household(db, household_data, user_id)


@router.get("/", response_model=List[HouseholdOut])
def get_my_households(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all households for current user"""
    return get_user_households(db, user_id)


@router.post("/join", response_model=HouseholdOut)
def join_with_invite_code(
    join_data: HouseholdJoin,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Join a household with its invite code"""
    return join_household(db, join_data.invite_code, user_id)


@router.get("/{household_id}", response_model=HouseholdOut)
def get_household_details(household: Household = Depends(get_member_household)):
    return household


@router.get("/{household_id}/invite-code", response_model=InviteCodeOut)
def get_household_invite_code(household: Household = Depends(get_member_household)):
    """Get the invite code to share with new members"""
    return InviteCodeOut(household_id=household.id, invite_code=household.invite_code)


@router.get("/{household_id}/members", response_model=List[HouseholdMemberOut])
def get_members(
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Get user accounts belonging to the household"""
    return get_household_members(db, household.id)


@router.patch("/{household_id}/members/{member_user_id}/role", response_model=HouseholdMemberOut)
def toggle_role(
    household_id: str,
    member_user_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Switch a member between admin and member (admin only)"""
    return toggle_member_role(db, household_id, member_user_id, user_id)


@router.patch("/{household_id}/members/{member_user_id}/link", response_model=HouseholdMemberOut)
def link_member(
    household_id: str,
    member_user_id: str,
    link_data: MemberLink,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Link a user account to a roommate, or unlink it (admin only)"""
    return link_member_to_roommate(db, household_id, member_user_id, link_data.roommate_id, user_id)


@router.delete("/{household_id}/members/{member_user_id}")
def remove_household_member(
    household_id: str,
    member_user_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Remove a user from the household (admin only)"""
    remove_member(db, household_id, member_user_id, user_id)
    return {"message": "Member removed successfully"}


@router.get("/{household_id}/rooms", response_model=List[RoomOut])
def get_household_rooms(
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    return get_rooms(db, household.id)


@router.post("/{household_id}/rooms", response_model=RoomOut)
def add_household_room(
    room_data: RoomCreate,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Add a room"""
    return add_room(db, household.id, room_data)


@router.delete("/{household_id}/rooms/{room_name}")
def remove_household_room(
    room_name: str,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Remove a room and its roommates"""
    remove_room(db, household.id, room_name)
    return {"message": "Room removed successfully"}


@router.get("/{household_id}/roommates", response_model=List[RoommateOut])
def get_household_roommates(
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    return get_roommates(db, household.id)


@router.post("/{household_id}/roommates", response_model=RoommateOut)
def add_household_roommate(
    roommate_data: RoommateCreate,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Add a roommate to a room"""
    return add_roommate(db, household.id, roommate_data)


@router.delete("/{household_id}/roommates/{roommate_id}")
def remove_household_roommate(
    roommate_id: str,
    household: Household = Depends(get_member_household),
    db: Session = Depends(get_db)
):
    """Remove a roommate who never paid for an expense"""
    remove_roommate(db, household.id, roommate_id)
    return {"message": "Roommate removed successfully"}
