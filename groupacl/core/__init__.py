"""Core access control and settings."""
