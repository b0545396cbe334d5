"""Terraform mixin: runs the terraform CLI as a bundle step type."""

__version__ = "0.1.0"
