"""
Ledger Tests - Resource accounting

Tests ResourceLedger construction, grant/release/kill mutations and the
conservation invariant.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.errors import InvalidArgument, InvalidOperation
from models.ledger import ResourceLedger


def _two_by_two() -> ResourceLedger:
    # P0 holds R0[1], P1 holds R1[2]; R0 has 3 instances, R1 has 2
    return ResourceLedger(
        num_processes=2,
        num_resources=2,
        total=[3, 2],
        available=[2, 0],
        allocated=[[1, 0], [0, 2]],
        requested=[[0, 1], [0, 0]]
    )


def _assert_unchanged(ledger: ResourceLedger, before: dict) -> None:
    after = ledger.snapshot()
    for key in before:
        assert np.array_equal(before[key], after[key]), f"{key} changed"


def test_initial_state():
    """Test ledger exposes the arrays it was built from."""
    print("\n" + "="*60)
    print("TEST 1: Ledger Construction")
    print("="*60)

    ledger = _two_by_two()
    print(f"\nCreated: {ledger}")

    assert list(ledger.total) == [3, 2]
    assert list(ledger.available) == [2, 0]
    assert ledger.allocated[1][1] == 2
    assert ledger.requested[0][1] == 1
    assert ledger.held_resources(0) == [0]
    assert ledger.held_resources(1) == [1]
    ledger.assert_conservation("at initial state")
    print("  ✓ Construction and conservation check correct")


def test_defaults_to_empty_matrices():
    ledger = ResourceLedger(2, 3, total=[1, 2, 3], available=[1, 2, 3])

    assert ledger.allocated.shape == (2, 3)
    assert not ledger.allocated.any()
    assert not ledger.requested.any()


def test_rejects_invalid_initial_state():
    """Test construction validation (shape, negatives, available > total, conservation)."""
    print("\n" + "="*60)
    print("TEST 2: Initial State Validation")
    print("="*60)

    with pytest.raises(InvalidArgument):
        ResourceLedger(0, 1, total=[1], available=[1])

    with pytest.raises(InvalidArgument):
        ResourceLedger(1, 2, total=[1], available=[1])

    with pytest.raises(InvalidArgument):
        ResourceLedger(1, 1, total=[1], available=[-1])

    with pytest.raises(InvalidArgument):
        ResourceLedger(1, 1, total=[1], available=[2])

    with pytest.raises(InvalidArgument):
        ResourceLedger(1, 1, total=[1], available=[1], allocated=[[1, 0]])

    # available + allocated must equal total
    with pytest.raises(InvalidArgument) as excinfo:
        ResourceLedger(1, 1, total=[2], available=[2], allocated=[[1]])
    print(f"  ✓ Correctly rejected: {excinfo.value}")
    assert "conservation" in str(excinfo.value)


def test_rejects_non_integer_counts():
    """Fractional, non-numeric and ragged inputs are refused instead of coerced."""
    with pytest.raises(InvalidArgument) as excinfo:
        ResourceLedger(1, 1, total=[1.7], available=[1.7])
    assert "whole numbers" in str(excinfo.value)

    with pytest.raises(InvalidArgument):
        ResourceLedger(1, 1, total=["a"], available=[1])
    with pytest.raises(InvalidArgument):
        ResourceLedger(1, 1, total=[True], available=[True])
    with pytest.raises(InvalidArgument):
        ResourceLedger(2, 2, total=[1, 1], available=[1, 1], allocated=[[0, 0], [0]])
    with pytest.raises(InvalidArgument):
        ResourceLedger(1, 1, total=[1], available=[0], allocated=[[0.5]])

    # Whole-valued floats are exact, so they are accepted
    ledger = ResourceLedger(1, 1, total=[2.0], available=[2.0])
    assert list(ledger.total) == [2]
    assert ledger.total.dtype.kind == 'i'


def test_views_are_read_only():
    ledger = _two_by_two()

    with pytest.raises(ValueError):
        ledger.available[0] = 99
    with pytest.raises(ValueError):
        ledger.allocated[0][0] = 99

    assert list(ledger.available) == [2, 0]


def test_grant_moves_units_and_clears_request():
    """Test grant decrements available, increments allocation, clears request."""
    ledger = _two_by_two()

    ledger.grant(0, 0, 2)

    assert ledger.available[0] == 0
    assert ledger.allocated[0][0] == 3
    assert ledger.requested[0][0] == 0
    ledger.assert_conservation("after grant")


def test_grant_insufficient_leaves_ledger_unchanged():
    ledger = _two_by_two()
    before = ledger.snapshot()

    with pytest.raises(InvalidOperation):
        ledger.grant(0, 1, 1)

    _assert_unchanged(ledger, before)


def test_release():
    """Test release returns units and rejects over-release without mutation."""
    print("\n" + "="*60)
    print("TEST 3: Release")
    print("="*60)

    ledger = _two_by_two()

    ledger.release(1, 1, 1)
    print(f"  ✓ Released R1[1] from P1, available now {list(ledger.available)}")
    assert ledger.available[1] == 1
    assert ledger.allocated[1][1] == 1

    before = ledger.snapshot()
    with pytest.raises(InvalidOperation) as excinfo:
        ledger.release(1, 1, 5)
    print(f"  ✓ Over-release rejected: {excinfo.value}")
    _assert_unchanged(ledger, before)


def test_rejects_bad_arguments():
    ledger = _two_by_two()
    before = ledger.snapshot()

    with pytest.raises(InvalidArgument):
        ledger.grant(2, 0, 1)
    with pytest.raises(InvalidArgument):
        ledger.grant(0, -1, 1)
    with pytest.raises(InvalidArgument):
        ledger.release(0, 0, 0)
    with pytest.raises(InvalidArgument):
        ledger.record_request(0, 0, -3)

    _assert_unchanged(ledger, before)


def test_request_overwrites_instead_of_queueing():
    ledger = _two_by_two()

    ledger.record_request(1, 0, 3)
    ledger.record_request(1, 0, 1)
    assert ledger.requested[1][0] == 1

    ledger.clear_request(1, 0)
    assert ledger.requested[1][0] == 0


def test_force_release_all():
    """Test kill releases every held unit and drops all requests."""
    ledger = _two_by_two()

    released = ledger.force_release_all(0)

    assert released == [1, 0]
    assert list(ledger.available) == [3, 0]
    assert not ledger.allocated[0].any()
    assert not ledger.requested[0].any()
    ledger.assert_conservation("after force release")

    # Second kill of the same process releases nothing
    assert ledger.force_release_all(0) == [0, 0]
    assert list(ledger.available) == [3, 0]


def test_conservation_through_mixed_operations():
    ledger = ResourceLedger(3, 2, total=[4, 3], available=[4, 3])

    ledger.grant(0, 0, 2)
    ledger.grant(1, 0, 1)
    ledger.grant(2, 1, 3)
    ledger.release(0, 0, 1)
    ledger.record_request(1, 1, 2)
    ledger.force_release_all(2)
    ledger.grant(1, 1, 2)

    for j in range(ledger.num_resources):
        assert ledger.available[j] + ledger.allocated[:, j].sum() == ledger.total[j]


def test_snapshot_is_independent():
    ledger = _two_by_two()
    snap = ledger.snapshot()

    snap['available'][0] = 42
    ledger.grant(0, 0, 1)

    assert ledger.available[0] == 1
    assert snap['allocated'][0][0] == 1


def main():
    """Run all ledger tests."""
    test_initial_state()
    test_defaults_to_empty_matrices()
    test_rejects_invalid_initial_state()
    test_rejects_non_integer_counts()
    test_views_are_read_only()
    test_grant_moves_units_and_clears_request()
    test_grant_insufficient_leaves_ledger_unchanged()
    test_release()
    test_rejects_bad_arguments()
    test_request_overwrites_instead_of_queueing()
    test_force_release_all()
    test_conservation_through_mixed_operations()
    test_snapshot_is_independent()
    print("\n✅ Ledger Tests PASSED")
    return 0


if __name__ == '__main__':
    sys.exit(main())
