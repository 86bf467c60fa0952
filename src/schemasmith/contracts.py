"""Public validation report models for schemasmith."""

from typing import List, Optional
from pydantic import BaseModel, Field

from schemasmith.codes import ValidationCode


class ValidationIssue(BaseModel):
    """A single problem found in a finished type graph."""
    code: ValidationCode
    message: str
    type_name: Optional[str] = None  # Type or operation the issue is about
    namespace: Optional[str] = None  # "output" | "input" for naming issues


class ValidationReport(BaseModel):
    """Result of validating an assembled schema."""
    ok: bool
    errors: List[ValidationIssue] = Field(default_factory=list)  # sorted by (code, type_name)

    @classmethod
    def from_issues(cls, issues: List[ValidationIssue]) -> "ValidationReport":
        ordered = sorted(issues, key=lambda i: (i.code.value, i.type_name or "", i.message))
        return cls(ok=not ordered, errors=ordered)

    def summary(self) -> str:
        return "\n".join(f"  [{issue.code.value}] {issue.message}" for issue in self.errors)
