"""
cluster - scheduled node synchronisation and propagation for the swarm cluster.
"""

__version__ = "0.3.0"
