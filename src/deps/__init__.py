"""Dependency discovery and invalidation.

This module finds content references between files and propagates
modified status through them.
"""
