"""Management activities.

Each activity composes backend calls with the provisioning poller:
- provisioning: provision/scale/register and wait for a terminal state
- walkthrough: run every management operation in order and report each step
"""
