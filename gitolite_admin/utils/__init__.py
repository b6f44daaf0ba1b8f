"""Helpers wrapping external tools."""
