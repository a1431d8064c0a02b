"""Test configuration for batchquery."""
import pytest

from _stubs import StubBalanceChecker, StubMulticall


@pytest.fixture
def balance_checker():
    """Provide a stub balance checker transport."""
    return StubBalanceChecker()


@pytest.fixture
def multicall():
    """Provide a stub Multicall2 transport."""
    return StubMulticall()
