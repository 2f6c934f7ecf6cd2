"""CRM sync service: Google Drive note sync and PBX call-event ingestion."""

__version__ = "0.1.0"
