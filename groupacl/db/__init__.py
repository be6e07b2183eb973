"""Persistence of groups, memberships and rules."""
