"""
Cancellation tokens for adapter runs.

A token is a one-shot flag with a reason. Tokens can be linked into a tree:
cancelling a parent cancels every child, so an adapter run can be given a
private token that fires on its own timer *or* when the domain-level token
fires.

    domain_token = CancellationToken()
    run_token = CancellationToken.any_of(domain_token)
    run_token.cancel_after(3.0, reason="timeout")
"""

import asyncio


class CancellationToken:
    """One-shot cancellation signal, optionally linked to parent tokens."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._children: list["CancellationToken"] = []
        self._parents: list["CancellationToken"] = []
        self._timer: asyncio.TimerHandle | None = None

    @classmethod
    def any_of(cls, *parents: "CancellationToken | None") -> "CancellationToken":
        """Create a token that fires when any of `parents` fires (or itself)."""
        token = cls()
        for parent in parents:
            if parent is None:
                continue
            if parent.cancelled:
                token.cancel(parent.reason)
            parent._children.append(token)
            token._parents.append(parent)
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = "cancelled") -> None:
        """Fire the token and all of its children. Idempotent."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for child in list(self._children):
            child.cancel(reason)

    def cancel_after(self, seconds: float, reason: str = "timeout") -> None:
        """Schedule cancellation on the running loop."""
        if self.cancelled:
            return
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(seconds, self.cancel, reason)

    async def wait(self) -> str | None:
        """Block until the token fires, returning the reason."""
        await self._event.wait()
        return self._reason

    def detach(self) -> None:
        """Unlink from parents and drop a pending timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for parent in self._parents:
            try:
                parent._children.remove(self)
            except ValueError:
                pass
        self._parents.clear()
