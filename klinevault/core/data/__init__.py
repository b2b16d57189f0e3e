"""Storage schema, connection management and the ingestion pipeline."""
