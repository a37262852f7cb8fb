"""Core infrastructure: logging, configuration, retry and the expression sandbox."""
