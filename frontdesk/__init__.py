"""Frontdesk: turn governance and knowledge-source cascade for voice agents."""

__version__ = "0.1.0"
