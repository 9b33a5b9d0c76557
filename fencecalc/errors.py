# fencecalc/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    line_item_id: str | None = None


class ValidationError(ValueError):
    """
    Raised when input is rejected before any calculation runs.

    Carries one FieldError per offending field so the HTTP layer can report
    them individually.
    """

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        detail = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(detail or "invalid input")
