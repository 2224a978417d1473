"""Core configuration, logging, errors and wiring."""
