"""
MarkNotes Backend - API Routes Package
========================================

Route Inventory:
    - notes.py:   /api/notes ...   (CRUD, search, stats, bulk delete)
    - health.py:  GET /api/health  (service health check)

Routes stay thin: extract input, call NoteService, return the envelope.
"""
