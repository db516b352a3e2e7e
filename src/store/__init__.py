"""Snapshot storage layer.

This module keeps built file snapshots across build cycles.
It powers restoration of files skipped by the filter stage.
"""
