"""Configuration, logging, exceptions and wire models."""
