"""
Capacity probes.

Three escalating tiers answer "is there capacity right now?":

1. **quick**: service-limit availability only
2. **robust**: quick + Terraform plan in a scratch workspace
3. **ultimate**: robust + real apply/destroy of a disposable instance

Usage:
    >>> from capacity_hunter.probes import build_probe
    >>> probe = build_probe(ProbeTier.ROBUST, cloud_api, provisioner, spec, settings)
    >>> result = await probe.check(target, token)
"""

from capacity_hunter.probes.strategies import (
    ProbeStrategy,
    QuickProbe,
    RobustProbe,
    UltimateProbe,
    build_probe,
)

__all__ = [
    "ProbeStrategy",
    "QuickProbe",
    "RobustProbe",
    "UltimateProbe",
    "build_probe",
]
