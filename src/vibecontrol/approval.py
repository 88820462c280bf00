"""
Approval Registry - two-phase, time-boxed, single-use authorization.

Lifecycle:

    request() -> Pending --grant()--> Granted token --validate_and_consume()--> Consumed
                 Pending --(5 min)--> Expired
                 Granted token --(60 s)--> Expired

One registry instance is shared by every request in the process. Each
state change is a single dict insert or pop with no await in between,
so concurrent requests can never both observe the same entry. No locks.
"""

import logging
import secrets
import time
from collections.abc import Callable
from typing import Any

from vibecontrol.config import ApprovalConfig
from vibecontrol.errors import InvalidOrExpiredRequest, PermissionDenied
from vibecontrol.types import ActiveToken, PendingApproval

logger = logging.getLogger(__name__)


def generate_request_id() -> str:
    return f"req_{secrets.token_hex(8)}"


def generate_token() -> str:
    return f"tok_{secrets.token_hex(16)}"


class ApprovalRegistry:
    """
    Issues pending approvals and exchanges them for one-time tokens.

    Expiry is evaluated against the injected clock rather than timers,
    so tests can move time deterministically.
    """

    def __init__(
        self,
        config: ApprovalConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        pending: dict[str, PendingApproval] | None = None,
        tokens: dict[str, ActiveToken] | None = None,
        request_id_factory: Callable[[], str] = generate_request_id,
        token_factory: Callable[[], str] = generate_token,
    ) -> None:
        self.config = config or ApprovalConfig()
        self._clock = clock
        self._pending = pending if pending is not None else {}
        self._tokens = tokens if tokens is not None else {}
        self._new_request_id = request_id_factory
        self._new_token = token_factory

    def request(self, action: str, reason: str, command: str) -> dict[str, Any]:
        """Record a dangerous operation awaiting human approval."""
        self.purge_expired()
        request_id = self._new_request_id()
        self._pending[request_id] = PendingApproval(
            action=action,
            reason=reason,
            command=command,
            created_at=self._clock(),
        )
        logger.info(f"Approval requested {request_id} ({action}): {command!r}")
        return {"status": "pending", "request_id": request_id}

    def grant(self, request_id: str) -> dict[str, Any]:
        """
        Exchange a pending request id for a one-time token.

        Raises:
            InvalidOrExpiredRequest: unknown, already granted, or stale id
        """
        pending = self._pending.pop(request_id, None)
        if pending is None or self._request_expired(pending):
            logger.warning(f"Rejected grant for {request_id}")
            raise InvalidOrExpiredRequest()

        token = self._new_token()
        self._tokens[token] = ActiveToken(
            request_id=request_id,
            command=pending.command,
            expires_at=self._clock() + self.config.token_ttl,
        )
        logger.info(f"Approval granted for {request_id}")
        self.purge_expired()
        return {
            "status": "granted",
            "approval_token": token,
            "expires_in": f"{int(self.config.token_ttl)} seconds",
        }

    def validate_and_consume(self, token: str) -> ActiveToken:
        """
        Consume a token and return what it authorizes.

        The token is removed before its expiry is checked, so every call
        consumes it whatever the outcome.

        Raises:
            PermissionDenied: unknown, already used, or expired token
        """
        record = self._tokens.pop(token, None)
        if record is None:
            logger.warning("Rejected unknown or reused approval token")
            raise PermissionDenied("Invalid approval token", reason="invalid")
        if self._clock() > record.expires_at:
            logger.warning(f"Rejected expired approval token for {record.request_id}")
            raise PermissionDenied("Approval token expired", reason="expired")
        logger.info(f"Approval token consumed for {record.request_id}")
        return record

    def purge_expired(self) -> int:
        """
        Drop stale pending approvals and long-dead tokens.

        A token stays for request_ttl past its expiry so a late caller is
        still told it expired rather than that it never existed.

        Returns how many records were removed.
        """
        now = self._clock()
        stale = [
            request_id
            for request_id, pending in list(self._pending.items())
            if now - pending.created_at > self.config.request_ttl
        ]
        for request_id in stale:
            self._pending.pop(request_id, None)

        dead = [
            token
            for token, record in list(self._tokens.items())
            if now - record.expires_at > self.config.request_ttl
        ]
        for token in dead:
            self._tokens.pop(token, None)
        return len(stale) + len(dead)

    def is_pending(self, request_id: str) -> bool:
        pending = self._pending.get(request_id)
        return pending is not None and not self._request_expired(pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def token_count(self) -> int:
        return len(self._tokens)

    def _request_expired(self, pending: PendingApproval) -> bool:
        return self._clock() - pending.created_at > self.config.request_ttl
