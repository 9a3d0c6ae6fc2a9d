"""Shared utilities: response cache and exceptions."""
