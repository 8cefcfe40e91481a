"""Unit tests for core orchestration logic."""
