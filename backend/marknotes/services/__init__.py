"""
MarkNotes Backend - Services Layer
====================================

Service Inventory:
    - query_builder: list parameters → filter, ordering, page window, page info
    - note_store:    NoteStore, persistence over the injected Database handle
    - note_service:  NoteService, store outcomes → envelopes and app exceptions
"""
