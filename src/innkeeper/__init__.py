"""
Innkeeper
=========

Dead man's switch monitor. Applications reserve an SLA, check in
periodically and are flagged when they go quiet; a small cluster of
monitor nodes surfaces which node acts on failures.
"""

__version__ = "1.0.0"
