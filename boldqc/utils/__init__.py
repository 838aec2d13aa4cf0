"""Shared helpers: logging, process execution, errors and console output."""
