"""Reconciliation of index documents against their source attachments."""
