"""Tests for the BudWatch integration."""
