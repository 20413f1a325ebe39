"""Filesystem safety layer: checked link/replace primitives, backups, and the operation log."""
