"""Gossip validation, stream counting, and reporting services."""
