"""
Export-side services: storage, image materialization, rendering surface,
archive bundling and the export orchestrator.
"""
