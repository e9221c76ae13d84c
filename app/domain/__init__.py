"""
Domain layer - errors and business identifiers.

No dependencies on infrastructure or frameworks.
"""
