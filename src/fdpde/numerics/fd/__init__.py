"""Stencil coefficients and validation helpers for finite differences."""
