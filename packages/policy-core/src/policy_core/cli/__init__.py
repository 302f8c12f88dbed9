"""Command-line interface (policyctl)."""
