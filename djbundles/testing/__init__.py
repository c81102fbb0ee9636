"""Helpers for testing Djbundles and applications built on it."""
