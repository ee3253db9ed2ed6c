"""Inbound request events."""
