"""
Shared Kernel Module
====================

Shared infrastructure used across both bounded contexts (reservations and
cluster): logging, time utilities, response envelopes, the write pipeline
and middleware.

DO NOT add reservation or cluster business logic to the shared kernel.
"""
