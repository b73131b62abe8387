"""Configuration, logging, errors and scheduling primitives."""
