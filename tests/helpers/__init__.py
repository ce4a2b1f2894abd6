"""Test helpers for the liquidator test suite"""

from tests.helpers.gateway_stubs import (
    FakeClock,
    FakeGateway,
    FakeSleep,
    StubMarginAccount,
    StubMargins,
    StubSigner,
    account,
    margins,
    market,
)

__all__ = [
    "FakeClock",
    "FakeGateway",
    "FakeSleep",
    "StubMarginAccount",
    "StubMargins",
    "StubSigner",
    "account",
    "margins",
    "market",
]
