"""
Relationship domain objects

Detached, in-memory view of a counselor's relationship record as handed
out by the relationship store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class InsertOutcome(str, Enum):
    """Result of an atomic insert-if-absent on a relationship"""
    ADDED = "added"
    ALREADY_PRESENT = "already_present"
    COUNSELOR_MISSING = "counselor_missing"


@dataclass
class StudentEntry:
    """One student in a counselor's conversation list"""
    student_id: str
    last_message_at: Optional[datetime] = None


@dataclass
class Relationship:
    """A counselor and the students who have ever messaged them, in insertion order"""
    counselor_id: str
    students: List[StudentEntry] = field(default_factory=list)

    def has_student(self, student_id: str) -> bool:
        return any(entry.student_id == student_id for entry in self.students)

    def add_student(self, student_id: str, at: datetime) -> bool:
        """Append a student unless already listed; returns True when appended"""
        if self.has_student(student_id):
            return False
        self.students.append(StudentEntry(student_id=student_id, last_message_at=at))
        return True

    def student_ids(self) -> List[str]:
        return [entry.student_id for entry in self.students]
