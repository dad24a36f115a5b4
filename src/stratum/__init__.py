"""
Stratum - layered instruction resolution for AI coding assistants

Stratum decides which instruction documents apply to an edited file, orders
them by tier precedence, and composes them into a single context under a
token budget.
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
