from __future__ import annotations

import uuid
from enum import Enum
from pydantic import BaseModel, Field


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationIssue(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    severity: Severity
    message: str
    component_ids: list[str] = Field(default_factory=list)
    node_ids: list[str] = Field(default_factory=list)
    suggested_fix: str | None = None


class ValidationResult(BaseModel):
    issues: list[ValidationIssue] = Field(default_factory=list)
    has_errors: bool = False
    has_warnings: bool = False

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]
