"""Shared building blocks for Relaygate packages and services."""
