"""Core helpers shared by chat models and handlers."""
