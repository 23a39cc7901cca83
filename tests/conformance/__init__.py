"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the clone ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - A failed call changes no state, emits no logs, sends no refunds
2. clone_properties.py - Clones hold no metadata and resolve through their origin
3. pagination.py - Pages follow index order and cover it exactly once

These tests use hypothesis for property-based testing.
"""
