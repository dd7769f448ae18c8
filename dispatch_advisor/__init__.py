"""Dispatch Pricing Advisor.

Conversational pricing advisor for a delivery-booking GraphQL API.

This package provides:
- A discount rule set and pricing comparison engine
- Intent/entity extraction over free-text messages
- A multi-turn order-creation state machine
- A hybrid conversation engine with an optional AI text generator
- Front-ends: MCP tool server, chat web server and CLI
"""

__version__ = "0.1.0"
