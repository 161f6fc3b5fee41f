"""
Cluster Module
==============

Node registry and coordinator discovery.

Exactly one node in a deployment is expected to hold the coordinator role;
it is the only node that acts on failing reservations.
"""
