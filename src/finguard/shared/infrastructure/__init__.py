"""Shared infrastructure: settings, logging, resilience."""
