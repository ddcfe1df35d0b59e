"""
Data models for the Resource Allocation Graph Deadlock Engine.
Ledger, process records, wait-for graph, cycle records and typed results.
"""
