"""Authentication token lifecycle and request admission gate."""
