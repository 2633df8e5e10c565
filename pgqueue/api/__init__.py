"""
HTTP surface: health probes and the queue metrics endpoint.
"""
