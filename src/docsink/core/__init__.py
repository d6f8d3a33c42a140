"""Core domain: models, ports, sanitization and write-mode policy."""
