"""HTTP surface of the monitoring core."""
