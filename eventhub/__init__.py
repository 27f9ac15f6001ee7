"""EventHub: backend for hackathon-style events.

Registration, team formation, sponsor tiers, hardware lending and an
append-only audit log, served as a JSON API by FastAPI. The application
object lives in ``eventhub.main``.
"""

__version__ = "0.4.0"
