"""Operation results with best-effort side effects kept apart."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SideEffectStatus(Enum):
    OK = "OK"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class SideEffect:
    """Outcome of a secondary step that never fails the operation."""
    name: str
    status: SideEffectStatus
    detail: str = ""

    @staticmethod
    def ok(name: str, detail: str = "") -> "SideEffect":
        return SideEffect(name, SideEffectStatus.OK, detail)

    @staticmethod
    def skipped(name: str, detail: str = "") -> "SideEffect":
        return SideEffect(name, SideEffectStatus.SKIPPED, detail)

    @staticmethod
    def failed(name: str, detail: str = "") -> "SideEffect":
        return SideEffect(name, SideEffectStatus.FAILED, detail)


@dataclass
class OperationResult:
    """Primary outcome of an operation plus its side effects."""
    succeeded: bool
    message: str = ""
    side_effects: List[SideEffect] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    def side_effect(self, name: str) -> Optional[SideEffect]:
        for effect in self.side_effects:
            if effect.name == name:
                return effect
        return None
