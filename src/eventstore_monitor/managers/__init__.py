"""Logging management."""
