"""
Read-only access to the host runtime's component registry.
"""
