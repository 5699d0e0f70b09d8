"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending pool ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_share_conservation.py - Share, cash and token conservation
2. test_accrual.py - Monotonic, idempotent interest accrual
3. test_pool_atomicity.py - All-or-nothing pool operations

These tests use hypothesis for property-based testing.
"""
