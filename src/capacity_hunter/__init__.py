"""
Capacity hunter for contended OCI Always-Free compute shapes.

Repeatedly probes Oracle Cloud for VM.Standard.A1.Flex capacity and
provisions the instance with Terraform as soon as capacity appears:
- Tiered capacity probes (quota, plan, real apply test)
- Retry orchestration across availability domains with uniform jitter
- Capacity monitor with operator alerts and hand-off to deployment

Architecture: click CLI + asyncio loops + Terraform provisioner + OCI SDK
"""

__version__ = "0.1.0"
