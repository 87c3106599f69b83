"""Cluster discovery and configuration validation helpers."""
