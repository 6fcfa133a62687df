"""Warehouse loading layer.

This module streams change envelopes into per-table load jobs.
It owns backpressure, batch window barriers, and the migration SDK.
"""
