"""
Homepage Backend — Services Layer
=================================

Service Inventory:
    - NoteService:       sticky note CRUD with soft delete
    - PaintService:      paint image validation and atomic storage
    - LastFmService:     per-user TTL cache over Last.fm recent tracks
    - LetterboxdService: global TTL cache over the film diary scrape
    - UpstreamClient:    shared httpx client, retries and circuit breaking

Each module exposes a singleton instance; the two caches and the circuit
breakers hold process-wide state that must be shared across requests.
"""
