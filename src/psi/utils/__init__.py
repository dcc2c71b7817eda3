"""
Console output, value formatting, reports and run configuration.
"""
