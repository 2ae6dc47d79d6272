"""Brain project resolution - which project does this directory belong to?

Public entry points live in `brain_resolve.project`.
"""
