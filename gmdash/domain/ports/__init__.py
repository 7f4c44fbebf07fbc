"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from gmdash.domain.ports.dashboard_source_port import (
    DashboardSourcePort,
    Source,
    UpstreamError,
)

__all__ = [
    "DashboardSourcePort",
    "Source",
    "UpstreamError",
]
