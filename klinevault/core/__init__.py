"""klinevault core: configuration, logging, errors, storage and ingestion."""
