"""
Breviago Backend — API Routes Package
======================================

Route Inventory:
    - index.py:          GET /, GET /api/v1
    - health.py:         GET /health
    - auth.py:           /api/v1/auth  (register, login, logout, refresh, me)
    - users.py:          /api/v1/users (settings, public profiles)
    - acronyms.py:       /api/v1/acronyms (CRUD, search, batch, notes, related, grants)
    - labels.py:         /api/v1/labels
    - organizations.py:  /api/v1/organizations (+ members)
    - folders.py:        /api/v1/folders, /api/v1/documents

Routes handle HTTP only; permission checks come from the
`require_permission` dependency and everything else from the services.
"""
