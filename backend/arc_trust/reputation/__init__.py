"""Reputation scoring for feedback subjects."""
