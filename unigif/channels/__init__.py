"""Chat channels and the delivery interface."""
