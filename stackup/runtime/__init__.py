"""Wrappers around the docker compose control plane and child processes."""
