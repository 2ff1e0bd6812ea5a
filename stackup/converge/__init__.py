"""Readiness probing and the bootstrap step sequence."""
