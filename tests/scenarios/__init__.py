"""End-to-end scenario tests for the idempotency filter.

Each module drives the orders app from conftest.py through FastAPI and
checks one aspect of idempotency handling.
"""
