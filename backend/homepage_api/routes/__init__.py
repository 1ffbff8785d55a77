"""
Homepage Backend — API Routes Package
=====================================

Route Inventory:
    - notes.py:       /notes        sticky note CRUD
    - paint.py:       /paint        shared drawing getter/setter
    - lastfm.py:      /lastfm       cached Last.fm recent-tracks proxy
    - letterboxd.py:  /letterboxd   cached film diary scrape
    - health.py:      /health       service health check

Routes stay thin: read the request, call a service, shape the response.
"""
