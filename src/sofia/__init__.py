"""
Sofia - brain-health companion API

CRUD backend for the Sofia companion application:
- User profiles, About Me and story chapters
- Conversation sessions (transcripts encrypted at rest)
- Safety events and clinical alerts
- Document ingestion with provider notifications
- Audit trail for every sensitive operation

``sofia.client`` holds the Python client with offline sync and
``sofia.alignment`` the value alignment scorer.
"""

__version__ = "1.0.0"
