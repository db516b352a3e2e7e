"""Host pipeline contract, session state and reference host.

This module defines how Kiln stages plug into a build engine.
"""
