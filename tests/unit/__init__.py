"""
Unit tests for capacity hunter.

Test individual components in isolation:
- Domain models and settings (validation, constraints)
- Backoff policy and retry orchestrator (rounds, quota exclusion)
- Provisioning (classification, attempt cleanup, Terraform subprocesses)
- Probe tiers and the capacity monitor
- Notifiers, housekeeping and the CLI
"""
