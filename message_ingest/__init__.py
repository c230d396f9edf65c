"""
Message Ingest Service - stores queued messages as Cloud Storage objects keyed by message id.
"""
