"""
peopleguard.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation for consistent log enrichment.
- Compliance audit trail for mutating HTTP requests.
"""
