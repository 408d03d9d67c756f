"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Caller principals and the single authorization check used at component
boundaries (registry owners, pending-request responders, handoff parties).
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Iterable

from .errors import UnauthorizedError


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Identity presented by a caller.

    Two principals are equal only when both name and token match, so a
    principal cannot be forged from its name.
    """

    name: str
    token: str = field(default_factory=lambda: secrets.token_hex(16), repr=False)


def require_principal(
    caller: Principal | None,
    allowed: Iterable[Principal | None],
    *,
    action: str,
) -> None:
    """
    Raise `UnauthorizedError` unless `caller` is one of `allowed`.

    Args:
        caller: Principal presented by the caller.
        allowed: Principals permitted for this action. `None` entries are ignored.
        action: Short action label used in the error message.
    """
    if caller is None:
        raise UnauthorizedError(f"{action}: caller principal is required")
    for candidate in allowed:
        if candidate is not None and candidate == caller:
            return
    raise UnauthorizedError(f"{action}: principal '{caller.name}' is not authorized")
