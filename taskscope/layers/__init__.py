"""Scope governance engine layers."""
