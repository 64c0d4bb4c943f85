"""User interfaces for mdsign."""
