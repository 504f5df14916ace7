"""
Shared utilities for pluginscope.
"""
