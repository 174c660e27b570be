#!/usr/bin/env python3
"""
Tests for CancellationToken.

Usage:
    source .venv/bin/activate
    python test_cancellation.py
"""

from _runner import run_module

import asyncio

import anyio

from domainstat.cancellation import CancellationToken


def test_cancel_sets_reason_once():
    async def go():
        token = CancellationToken()
        token.cancel("resolved")
        token.cancel("later")
        return token

    token = anyio.run(go)
    assert token.cancelled
    assert token.reason == "resolved"


def test_parent_cancels_children():
    async def go():
        parent = CancellationToken()
        child = CancellationToken.any_of(parent)
        grandchild = CancellationToken.any_of(child)
        parent.cancel("resolved")
        return child, grandchild

    child, grandchild = anyio.run(go)
    assert child.cancelled and grandchild.cancelled
    assert grandchild.reason == "resolved"


def test_child_does_not_cancel_parent():
    async def go():
        parent = CancellationToken()
        child = CancellationToken.any_of(parent)
        child.cancel("timeout")
        return parent

    assert not anyio.run(go).cancelled


def test_any_of_fires_on_either_input():
    async def go():
        a, b = CancellationToken(), CancellationToken()
        joined = CancellationToken.any_of(a, None, b)
        b.cancel("second")
        return joined

    joined = anyio.run(go)
    assert joined.cancelled
    assert joined.reason == "second"


def test_any_of_inherits_cancelled_parent():
    async def go():
        parent = CancellationToken()
        parent.cancel("done")
        return CancellationToken.any_of(parent)

    token = anyio.run(go)
    assert token.cancelled and token.reason == "done"


def test_cancel_after_fires_timer():
    async def go():
        token = CancellationToken()
        token.cancel_after(0.02)
        reason = await asyncio.wait_for(token.wait(), 1)
        return reason

    assert anyio.run(go) == "timeout"


def test_cancel_clears_pending_timer():
    async def go():
        token = CancellationToken()
        token.cancel_after(0.02, reason="timeout")
        token.cancel("resolved")
        await asyncio.sleep(0.05)
        return token.reason

    assert anyio.run(go) == "resolved"


def test_detach_stops_propagation():
    async def go():
        parent = CancellationToken()
        child = CancellationToken.any_of(parent)
        child.cancel_after(0.02)
        child.detach()
        parent.cancel()
        await asyncio.sleep(0.05)
        return child

    child = anyio.run(go)
    assert not child.cancelled


if __name__ == "__main__":
    run_module(globals(), "Cancellation tokens")
