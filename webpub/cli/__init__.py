"""webpub command-line interface."""
