"""Skyflow upstream client."""
