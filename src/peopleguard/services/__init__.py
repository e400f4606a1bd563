"""
peopleguard.services

Service layer (business rules + transaction ownership).
"""
