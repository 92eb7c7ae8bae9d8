"""
Elastic Supply - Jobs Module

This module contains command-line jobs:
- run_cycle: Execute one rebase cycle against a scenario file

Reliability Level: Offline Job
"""
