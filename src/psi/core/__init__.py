"""
Registry, filter matching, assertions and the execution engine.
"""
