"""
MarkNotes Client
==================

    gateway.py   NotesClient (httpx), ApiError, with_retry, get_error_message
    view.py      NotesView controller and its serializable NotesViewState
"""
