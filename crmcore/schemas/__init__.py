"""Validated constructors and patches for every CRM entity kind."""
