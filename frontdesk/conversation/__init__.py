"""Conversation domain: governed per-call session state.

Submodules are imported directly (``frontdesk.conversation.state``,
``frontdesk.conversation.governance`` and so on) to keep this package
import light.
"""
