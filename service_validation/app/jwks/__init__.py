"""
JWKS validation package.

Fetches, reads and parses JSON Web Key Sets from the three supported
sources and reduces every outcome to a uniform verdict.
"""
