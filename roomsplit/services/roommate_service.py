import logging
from sqlalchemy.orm import Session
from sqlalchemy import and_
from fastapi import HTTPException
from typing import List, Optional
from roomsplit.models.households import HouseholdMember, Room, Roommate
from roomsplit.models.expenses import Expense, ExpenseShare
from roomsplit.models.qr_codes import RoommateQRCode
from roomsplit.schemas.household_schema import RoomCreate, RoommateCreate
from roomsplit.utils.settlement_engine import MemberRecord

logger = logging.getLogger(__name__)


def get_rooms(db: Session, household_id: str) -> List[Room]:
    """Get all rooms of a household"""
    return db.query(Room).filter(Room.household_id == household_id).all()


def get_room_by_name(db: Session, household_id: str, name: str) -> Optional[Room]:
    return db.query(Room).filter(and_(Room.household_id == household_id, Room.name == name)).first()


def add_room(db: Session, household_id: str, room_data: RoomCreate) -> Room:
    """Add a room; names are unique within a household"""
    name = room_data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Room name must not be blank")
    if get_room_by_name(db, household_id, name):
        raise HTTPException(status_code=400, detail="Room already exists in this household")

    room = Room(household_id=household_id, name=name)
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info(f"Room {name} added to household {household_id}")
    return room


def remove_room(db: Session, household_id: str, name: str):
    """Remove a room together with every roommate living in it"""
    room = get_room_by_name(db, household_id, name)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")

    roommates = db.query(Roommate).filter(
        and_(Roommate.household_id == household_id, Roommate.room == name)
    ).all()
    payers = [roommate.name for roommate in roommates if is_expense_payer(db, roommate.id)]
    if payers:
        logger.warning(f"Refusing to remove room {name}: {payers} paid for expenses")
        raise HTTPException(
            status_code=400,
            detail=f"Cannot remove room: {', '.join(payers)} paid for expenses"
        )

    for roommate in roommates:
        _delete_roommate(db, roommate)
    db.delete(room)
    db.commit()
    logger.info(f"Room {name} and {len(roommates)} roommates removed from household {household_id}")


def get_roommates(db: Session, household_id: str) -> List[Roommate]:
    """Get all roommates of a household"""
    return db.query(Roommate).filter(Roommate.household_id == household_id).all()


def get_roommate(db: Session, household_id: str, roommate_id: str) -> Optional[Roommate]:
    return db.query(Roommate).filter(
        and_(Roommate.id == roommate_id, Roommate.household_id == household_id)
    ).first()


def add_roommate(db: Session, household_id: str, roommate_data: RoommateCreate) -> Roommate:
    """Add a roommate to an existing room"""
    name = roommate_data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Roommate name must not be blank")
    if not get_room_by_name(db, household_id, roommate_data.room):
        raise HTTPException(status_code=400, detail=f"Room {roommate_data.room} does not exist")

    roommate = Roommate(household_id=household_id, name=name, room=roommate_data.room)
    db.add(roommate)
    db.commit()
    db.refresh(roommate)
    return roommate


def is_expense_payer(db: Session, roommate_id: str) -> bool:
    return db.query(Expense).filter(Expense.paid_by == roommate_id).first() is not None


def _delete_roommate(db: Session, roommate: Roommate):
    db.query(ExpenseShare).filter(ExpenseShare.roommate_id == roommate.id).delete(synchronize_session=False)
    db.query(RoommateQRCode).filter(RoommateQRCode.roommate_id == roommate.id).delete(synchronize_session=False)
    db.query(HouseholdMember).filter(HouseholdMember.linked_roommate_id == roommate.id).update(
        {HouseholdMember.linked_roommate_id: None}, synchronize_session=False
    )
    db.delete(roommate)


def remove_roommate(db: Session, household_id: str, roommate_id: str):
    """Remove a roommate and their expense shares; blocked while they are the payer of any expense"""
    roommate = get_roommate(db, household_id, roommate_id)
    if not roommate:
        raise HTTPException(status_code=404, detail="Roommate not found")

    if is_expense_payer(db, roommate_id):
        logger.warning(f"Refusing to remove roommate {roommate_id}: paid for expenses")
        raise HTTPException(status_code=400, detail="Cannot remove a roommate who paid for expenses")

    _delete_roommate(db, roommate)
    db.commit()
    logger.info(f"Roommate {roommate_id} removed from household {household_id}")


def to_member_record(roommate: Roommate) -> MemberRecord:
    return MemberRecord(
        id=roommate.id,
        name=roommate.name,
        room=roommate.room,
        household_id=roommate.household_id
    )
