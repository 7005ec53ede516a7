"""
Core utilities: environment-driven settings and logging configuration.
"""
