"""Bundled JSON schema for terraform step payloads."""

from importlib import resources

SCHEMA_FILE = "schema.json"


def load_schema_text() -> str:
    return resources.files(__name__).joinpath(SCHEMA_FILE).read_text(encoding="utf-8")
