"""
SiteAssist
Website ingestion, namespaced retrieval and API-key gating
"""

__version__ = "1.0.0"
