"""recordspine command-line interface (typer + rich)."""
