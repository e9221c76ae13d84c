"""
Release version, reported in the startup log, on GET / and in the OpenAPI docs.

MAJOR.MINOR; MAJOR stays 0 until the API is declared stable.
"""

__version__ = "0.1"
