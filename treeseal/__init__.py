"""TreeSeal command-line interface."""
