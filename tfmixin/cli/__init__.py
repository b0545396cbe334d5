"""Command line interface for the terraform mixin."""
