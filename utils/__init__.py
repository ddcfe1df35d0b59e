"""
Logging and scenario loading utilities.
"""
