from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PlannerError(Exception):
    """Base error envelope. Data sparsity never raises; only load failures and caller misuse do."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<input>"
        return f"{loc}: {self.code}: {self.message}"


class DocumentLoadError(PlannerError):
    pass


class ResourceLoadError(PlannerError):
    pass


class ContractError(PlannerError):
    pass


class RulesConfigError(ValueError):
    pass
