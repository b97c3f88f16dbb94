"""
Unit tests for the torutils.descriptor module.
"""
