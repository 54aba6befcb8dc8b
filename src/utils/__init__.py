"""Utility modules for the relay bot."""
