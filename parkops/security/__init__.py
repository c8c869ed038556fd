"""Security package - authorization checks."""
