"""
Payroll Kernel

Shared foundation for the payroll calculation core:
- Typed, coded exceptions
- Structured JSON logging with context propagation
- Frozen domain value types and the single money-rounding rule
- Injectable clock
- SQLAlchemy declarative base for persistence adapters
"""

__version__ = "0.1.0"
