"""Command-line interface for ccdstage."""
