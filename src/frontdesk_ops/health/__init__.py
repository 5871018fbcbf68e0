"""Backend connection health monitoring."""

from .monitor import ConnectionHealthMonitor, ProbeResult, default_probes

__all__ = ["ConnectionHealthMonitor", "ProbeResult", "default_probes"]
