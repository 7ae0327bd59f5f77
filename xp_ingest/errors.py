from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ImportFailure(Exception):
    """Raised by callers that need a recognised import and got nothing usable."""

    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:  # pragma: no cover - convenience for logging
        return f"{self.code}: {self.message} | {self.details}"
