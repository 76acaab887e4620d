"""
D&D Tactical Engine - Custom Error Types
Structured exceptions for malformed input data.

Rule failures (no spell slots, reaction already used, out of range) are not
exceptions; they come back as result objects with a ``reason``. These types
cover programmer and catalog errors only.
"""
from typing import Dict, Any, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the engine."""
    # General errors
    UNKNOWN = "UNKNOWN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Dice errors
    DICE_NOTATION_INVALID = "DICE_NOTATION_INVALID"

    # Grid errors
    GRID_INVALID = "GRID_INVALID"
    GRID_OUT_OF_BOUNDS = "GRID_OUT_OF_BOUNDS"

    # Catalog errors
    CATALOG_ENTRY_NOT_FOUND = "CATALOG_ENTRY_NOT_FOUND"

    # Combatant errors
    COMBATANT_INVALID = "COMBATANT_INVALID"


class GameError(Exception):
    """
    Base exception for all engine errors.

    Provides structured error information with:
    - Error code for programmatic handling
    - Human-readable message
    - Additional context details
    - Recovery hints for the caller
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.UNKNOWN,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a plain dictionary."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "recoverable": self.recoverable,
                "recovery_hint": self.recovery_hint
            }
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class DiceNotationError(GameError, ValueError):
    """Raised when a dice expression cannot be parsed."""

    def __init__(self, notation: str):
        super().__init__(
            code=ErrorCode.DICE_NOTATION_INVALID,
            message=f"Invalid dice notation: {notation!r}",
            details={"notation": notation},
            recovery_hint="Use notation like '2d6+3', '1d8', or a flat '1+2'"
        )


class GridError(GameError):
    """Raised when grid construction data is inconsistent."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.GRID_INVALID,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            code=code,
            message=message,
            details=details,
            recovery_hint="Check the map preset dimensions and cell coordinates"
        )


class CatalogLookupError(GameError):
    """Raised by strict catalog lookups when an id is unknown."""

    def __init__(self, kind: str, entry_id: str):
        super().__init__(
            code=ErrorCode.CATALOG_ENTRY_NOT_FOUND,
            message=f"{kind} '{entry_id}' not found",
            details={"kind": kind, "id": entry_id},
            recovery_hint=f"Use an id from the {kind.lower()} catalog"
        )


class InvalidCombatantError(GameError):
    """Raised when a combatant payload does not match its declared type."""

    def __init__(self, message: str, combatant_id: Optional[str] = None):
        super().__init__(
            code=ErrorCode.COMBATANT_INVALID,
            message=message,
            details={"combatant_id": combatant_id} if combatant_id else {},
            recoverable=False,
        )
