"""On-disk layout and JSON-backed stores for projects and runs."""
