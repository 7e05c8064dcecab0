"""Shared record declarations for the test suite."""
