"""
Security checks applied to caller-supplied locations.

- paths: confines file references to the allowed base directory.
- network: rejects URLs that point at internal network addresses.
"""
