"""Test doubles for the console relay test suite."""
