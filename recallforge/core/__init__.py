"""Core layer: configuration, logging, exceptions and retry helpers."""
