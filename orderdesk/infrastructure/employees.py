"""Resolution of employee credentials to caller identities."""
from __future__ import annotations

import hmac
import json
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from orderdesk.core.schema import EmployeeLogin

BEARER_PREFIX = "Bearer "


def strip_bearer_prefix(header: str) -> str:
    return header[len(BEARER_PREFIX):] if header.startswith(BEARER_PREFIX) else header


class EmployeeDirectory:
    """Maps a presented credential to the employee it belongs to.

    The returned identity is the employee name; callers treat it as an opaque
    token and never parse it.
    """

    def __init__(self, employees: Iterable[EmployeeLogin] = ()) -> None:
        self._employees = list(employees)

    @classmethod
    def from_file(cls, path: Path) -> "EmployeeDirectory":
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ValueError(f"cannot read employee credentials from {path}") from exc
        if not isinstance(raw, list):
            raise ValueError("employee credentials file must contain a list")
        try:
            employees = [EmployeeLogin.model_validate(item) for item in raw]
        except ValidationError as exc:
            raise ValueError(f"invalid employee entry in {path}") from exc
        return cls(employees)

    def resolve(self, credential: str | None) -> str | None:
        if not credential:
            return None
        supplied = strip_bearer_prefix(credential.strip()).encode("utf-8")
        match: str | None = None
        for employee in self._employees:
            if hmac.compare_digest(employee.password.encode("utf-8"), supplied):
                match = employee.name
        return match

    def __len__(self) -> int:
        return len(self._employees)
