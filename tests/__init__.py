"""
Test suite for launchpad-core

Contains:
- tests/unit/          : Unit tests for the pricing engine, escrow reconciler,
                         domain models and JSON Schema contracts
"""
