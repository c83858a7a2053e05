"""Sensu check for CPU usage with a list of the top CPU-consuming processes."""
