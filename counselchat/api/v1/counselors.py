"""
Counselor relationship API endpoints

Lets the counselor dashboard load the students who have messaged a
counselor before any realtime `new_student_message` arrives.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from counselchat.core.exceptions import RelationshipStoreError
from counselchat.schemas.api import RelationshipResponse, StudentEntryResponse
from counselchat.services.relationship_store import RelationshipStore, SQLRelationshipStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/counselors", tags=["counselors"])


def get_relationship_store() -> RelationshipStore:
    return SQLRelationshipStore()


@router.get("/{counselor_id}/students", response_model=RelationshipResponse)
async def list_counselor_students(
    counselor_id: str,
    store: RelationshipStore = Depends(get_relationship_store)
):
    """Students in conversation with a counselor, in first-contact order"""
    try:
        relationship = await store.find_relationship(counselor_id)
    except RelationshipStoreError as e:
        logger.error(f"Error loading students for {counselor_id}: {e}")
        raise HTTPException(status_code=503, detail="Relationship store unavailable")

    if relationship is None:
        raise HTTPException(status_code=404, detail="Counselor not found")

    return RelationshipResponse(
        counselor_id=relationship.counselor_id,
        students=[
            StudentEntryResponse(student_id=entry.student_id, last_message_at=entry.last_message_at)
            for entry in relationship.students
        ],
        total=len(relationship.students),
    )
