"""Core infrastructure: configuration, bootstrap, errors, logging and signals."""
