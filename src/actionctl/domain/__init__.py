"""Domain layer — pure transforms over request and response data.

This layer depends only on stdlib.
It must never import from services, commands, config, or mcp.
"""
