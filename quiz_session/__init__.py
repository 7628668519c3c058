"""Quiz attempt session service."""
