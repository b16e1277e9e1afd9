"""
Integration tests for capacity hunter.

Test components together against on-disk workspaces:
- Probe workspace isolation and test instance cleanup
- Retry orchestrator scenarios (capacity then success, quota everywhere)
- Monitor hand-off to deployment
"""
