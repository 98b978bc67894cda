"""
Command line interface for crate-seek.
"""
