"""
Property-based testing using Hypothesis.

This package contains property tests that verify invariants hold across
randomly generated inputs.

Modules:
    test_observer_properties: streaming statistics and snapshot restore
    test_checkpoint_properties: strategy placement, storage ordering, budgets
    test_workspace_properties: capacity growth
    test_payoff_properties: soft-plus bounds and Black-Scholes parity
"""
