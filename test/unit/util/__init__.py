"""
Unit tests for the torutils.util module.
"""
