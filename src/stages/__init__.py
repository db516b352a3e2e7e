"""Incremental pipeline stages.

This module provides the filter and cache stages and their rename and
property-copy helpers.
"""
