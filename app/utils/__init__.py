"""Shared utility helpers used by connectors and services."""
