"""
Server-side ingestion pipeline: archive reading, extraction, reordering,
blob storage and the catalog CLI.
"""
