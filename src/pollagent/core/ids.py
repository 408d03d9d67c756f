"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

Correlation identifier allocation.
"""

from __future__ import annotations

import hashlib
import secrets
import time

from .errors import IdentityExhaustedError

MAX_COUNTER = 2**64 - 1


class IdentityAllocator:
    """
    Deterministic, collision-resistant id source.

    Each id is a SHA-256 digest over `(wall clock ns, counter, requester,
    context)` keyed by a per-allocator random salt, so ids cannot be predicted
    from the context alone. The counter makes every id minted by one allocator
    unique even when the clock does not move.
    """

    def __init__(self, *, salt: bytes | None = None, digest_chars: int = 32) -> None:
        if digest_chars < 16 or digest_chars > 64:
            raise ValueError("digest_chars must be between 16 and 64")
        self._salt = salt if salt is not None else secrets.token_bytes(16)
        self._counter = 0
        self._digest_chars = digest_chars

    @property
    def counter(self) -> int:
        return self._counter

    def next(
        self,
        context: bytes | str = b"",
        *,
        requester: str = "",
        prefix: str = "id",
    ) -> str:
        """
        Mint a new opaque identifier.

        Args:
            context: Caller-supplied context mixed into the digest.
            requester: Identity of the component asking for the id.
            prefix: Human-readable prefix (`run`, `req`, `handoff`, ...).

        Returns:
            `"{prefix}_{hexdigest}"`.

        Raises:
            IdentityExhaustedError: If the counter would overflow.
        """
        if self._counter >= MAX_COUNTER:
            raise IdentityExhaustedError("identity counter exhausted")
        self._counter += 1

        raw_context = context.encode("utf-8") if isinstance(context, str) else bytes(context)
        h = hashlib.sha256(self._salt)
        h.update(time.time_ns().to_bytes(16, "big", signed=False))
        h.update(self._counter.to_bytes(8, "big", signed=False))
        h.update(requester.encode("utf-8"))
        h.update(b"\x00")
        h.update(raw_context)
        return f"{prefix}_{h.hexdigest()[: self._digest_chars]}"
