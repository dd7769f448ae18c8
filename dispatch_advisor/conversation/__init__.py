"""Conversation layer - extraction, context, order flow and the engine."""
