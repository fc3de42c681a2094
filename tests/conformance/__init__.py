"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the ScaledLedger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. share_conservation.py - Shares are conserved; rounding gap is bounded
2. failure_atomicity.py - All-or-nothing operation semantics
3. replay_determinism.py - Reproducible behavior
4. concurrency.py - Serializable history under concurrent callers

These tests use hypothesis for property-based testing.
"""
