"""Shared helpers: run ID tracking and Vault credential lookup."""
