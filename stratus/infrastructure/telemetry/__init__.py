"""
Stratus Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for machine lifecycle observability
- Metrics and traces export
"""

from stratus.infrastructure.telemetry.provisioning_telemetry import (
    ProvisioningTelemetry,
    OTELConfig,
    create_telemetry,
)

__all__ = [
    "ProvisioningTelemetry",
    "OTELConfig",
    "create_telemetry",
]
