"""
CLI Commands for the loyalty portal.

Usage:
    flask points upload members.csv [--dry-run] [--verbose]
    flask points expire [--dry-run]
    flask points expiry-warnings [--dry-run]
    flask points booking-confirmed BK-12345
"""
from .points import init_app as init_points_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_points_commands(app)
