"""
Event recording for the Resource Allocation Graph Deadlock Engine.
"""
