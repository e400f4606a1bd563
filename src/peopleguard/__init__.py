"""
peopleguard

HR case-management service (PeopleGuard).

Responsibilities:
- Expose the package version for the API and packaging metadata.
"""

__version__ = "0.1.0"
