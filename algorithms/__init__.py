"""
Algorithms package for the Resource Allocation Graph Deadlock Engine.
Contains graph construction, cycle detection, resource ordering, recovery
and the allocation engine that ties them together.
"""
