"""VaultIndexer - searchable markdown indexes for vault attachments."""

__version__ = "0.1.0"
