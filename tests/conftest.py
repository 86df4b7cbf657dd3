"""Shared fixtures for the navguard test suite."""

from __future__ import annotations

import pytest

from navguard.session import PolicySession


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeWindow:
    """Records the focus calls the incoming-call handler makes."""

    def __init__(self, minimized: bool = False) -> None:
        self.minimized = minimized
        self.calls: list[str] = []

    def is_minimized(self) -> bool:
        return self.minimized

    def restore(self) -> None:
        self.calls.append("restore")
        self.minimized = False

    def show(self) -> None:
        self.calls.append("show")

    def focus(self) -> None:
        self.calls.append("focus")


@pytest.fixture()
def t0() -> int:
    return 1_000_000


@pytest.fixture()
def clock(t0: int) -> FakeClock:
    return FakeClock(t0)


@pytest.fixture()
def session(clock: FakeClock) -> PolicySession:
    return PolicySession(clock=clock)


@pytest.fixture()
def window() -> FakeWindow:
    return FakeWindow()
