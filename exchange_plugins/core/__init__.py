"""Core swap and wallet types."""
