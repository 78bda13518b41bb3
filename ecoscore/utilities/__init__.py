"""Configuration, logging and calendar helpers."""
