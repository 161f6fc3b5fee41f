"""
Infrastructure Package
======================

Process-wide infrastructure: database engine and session lifecycle.
"""
