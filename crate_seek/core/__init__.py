"""
Core data models, configuration and error types for crate-seek.
"""
