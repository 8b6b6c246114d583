"""Shared utilities: logging, configuration and clocks."""
