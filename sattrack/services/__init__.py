"""Reminder engine services: detection, idempotency ledger, batch jobs and integrations."""
