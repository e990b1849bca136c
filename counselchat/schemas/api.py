"""
HTTP response schemas
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PresenceResponse(BaseModel):
    """Identities currently online, per role"""
    counselors: List[Optional[str]] = Field(default_factory=list)
    students: List[Optional[str]] = Field(default_factory=list)


class StudentEntryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: str = Field(..., serialization_alias="studentId")
    last_message_at: Optional[datetime] = Field(None, serialization_alias="lastMessageAt")


class RelationshipResponse(BaseModel):
    """A counselor's students in first-contact order"""
    model_config = ConfigDict(populate_by_name=True)

    counselor_id: str = Field(..., serialization_alias="counselorId")
    students: List[StudentEntryResponse] = Field(default_factory=list)
    total: int = 0
