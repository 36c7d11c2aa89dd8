"""
Test suite for prescient.

Unit tests for the error taxonomy, context engine, provider backends,
configuration registry, client facade and command-line interface.
"""
