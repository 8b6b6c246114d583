"""Command line interface for mavlinklog."""
