"""Shared helpers, validators and exceptions."""
