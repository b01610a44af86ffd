"""
Host utilities for hostkit.

This module contains the growable sized-query resolver with its native
backends, the environment queries built on it, and the directory mirror.
"""
