"""Command-line interface for tradeassist."""
