"""Tests for the collateral backfill. No test talks to a real service."""
