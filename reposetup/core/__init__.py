"""Core domain — models, configuration, engine, and host services."""
