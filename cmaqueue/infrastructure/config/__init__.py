"""Configuration loading (YAML, .env, environment) for the CLI."""
