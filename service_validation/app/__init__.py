"""
Resource validation service.

Validates JWKS sources (URL, file, inline content) before they are saved
into a component's configuration, and tells clients what kind of
component an id refers to.
"""
