"""
AgriTrade monitoring core.

Per-service request metrics, health classification, alert lifecycle
and Kubernetes-style health probing for the AgriTrade API.
"""

__version__ = "1.0.0"
