"""Optional HTTP surface over BackupService (install with the ``api`` extra)."""
