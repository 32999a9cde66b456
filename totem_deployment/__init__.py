"""
TotemParadox Deployment
=======================

Deploys and wires the TotemParadox contracts onto an EVM network.

Structure:
- plan: the declarative step list and its validation
- executor: runs the plan step by step, wiring and role grants
- deployer: creates one contract and verifies it on public networks
- network: web3.py access layer
- verification: Etherscan source verification
- reporting: progress, alerts and the deployment record
"""

__version__ = "1.0.0"
__author__ = "TotemParadox Team"
