"""
Deferred combat log entries.

Engine functions never write to a combat log; they return LogEntry records
alongside their state changes and the caller appends them.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class LogEntryType(str, Enum):
    """Categories of combat log entries."""
    DAMAGE = "damage"
    HEAL = "heal"
    DEATH = "death"
    CONDITION = "condition"
    ABILITY = "ability"
    DEATH_SAVE = "death_save"
    TURN = "turn"
    OTHER = "other"


@dataclass(frozen=True)
class LogEntry:
    """A single combat log record."""
    type: LogEntryType
    message: str
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "target_id": self.target_id,
            "target_name": self.target_name,
            "details": self.details,
        }
