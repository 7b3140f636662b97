"""
MarkNotes Backend - Application Package
=========================================

A small markdown note-taking service: a REST API over a notes table plus a
Python client (data gateway and view-state controller).

Architecture:

    ┌─────────────────────────────────────┐
    │  client.view   (NotesView state)    │  ← debounced search, save/delete
    ├─────────────────────────────────────┤
    │  client.gateway (NotesClient)       │  ← typed calls, errors, retry
    ╞═════════════════ HTTP ══════════════╡
    │  routes        (API Layer)          │  ← envelopes, status codes
    ├─────────────────────────────────────┤
    │  services      (NoteService,        │
    │                 query builder)      │  ← search/sort/page contract
    ├─────────────────────────────────────┤
    │  NoteStore + Database               │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
