"""Marginalia command-line interface."""
