"""
Unit tests for the torutils.control module.
"""
