"""Shared utilities for ChatterBox services."""
