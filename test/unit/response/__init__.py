"""
Unit tests for the torutils.response module.
"""
