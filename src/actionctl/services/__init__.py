"""Service layer — the request processing pipeline returning ResponseEnvelope.

Services may import from the domain layer.
They must never import from commands, output, or mcp.
"""
