"""HTTP server exposing the chat stream and conversation history."""

from tradeassist.server.app import create_app

__all__ = ["create_app"]
