"""Service-mix planner for independent consultants.

Turns a time-off, cost and income scenario into an annual capacity budget, a
pre-tax revenue requirement and the best discrete mix of service volumes.
"""

__version__ = "0.3.0"
