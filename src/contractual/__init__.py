"""
Contractual: declarative operation contracts over pluggable storage drivers.

A contract names an operation, its verb, input/output schemas and an
authorization rule. Wrapping it yields an async operation that validates,
authorizes, executes and reports one of a fixed set of outcomes.
"""

__version__ = "0.1.0"
