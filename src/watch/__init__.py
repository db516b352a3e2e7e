"""Filesystem watching and build cycle driving.

This module turns filesystem events into debounced incremental rebuilds.
"""
