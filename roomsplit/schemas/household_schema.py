from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from enum import Enum


class MemberRole(str, Enum):
    admin = "admin"
    member = "member"


class HouseholdCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class HouseholdJoin(BaseModel):
    invite_code: str = Field(..., min_length=1, max_length=16)


class HouseholdOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    created_by: str
    created_at: datetime


class InviteCodeOut(BaseModel):
    household_id: str
    invite_code: str


class HouseholdMemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    household_id: str
    user_id: str
    role: MemberRole
    linked_roommate_id: Optional[str] = None
    joined_at: datetime


class MemberLink(BaseModel):
    # None unlinks the user from any roommate
    roommate_id: Optional[str] = None


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class RoomOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    household_id: str
    name: str


class RoommateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    room: str = Field(..., min_length=1, max_length=100)


class RoommateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    household_id: str
    name: str
    room: str
