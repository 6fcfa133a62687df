"""Export ingestion pipeline.

This module reads compressed export shards and normalizes their items.
It routes change envelopes into batch windows for the store layer.
"""
