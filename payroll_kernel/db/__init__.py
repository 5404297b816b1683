"""Database infrastructure for payroll persistence adapters."""
