"""
Sync Module

connectivity: cached remote reachability/schema verdict
coordinator: remote-first reads, local-first writes, reconciliation
"""
