"""Workflow core: states, context, validator, transition map and runner."""
