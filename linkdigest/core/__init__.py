"""Shared building blocks: config, errors, types, process/fetch helpers."""
