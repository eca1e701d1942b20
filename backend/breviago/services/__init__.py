"""
Breviago Backend — Services Layer
==================================

Business rules between the routes and the database. Routes stay thin and call
into the module-level service singletons.

Service Inventory:
    - security:              bcrypt password hashing, JWT issue/verify
    - user_service:          registration, login sessions, settings, profiles
    - acronym_service:       acronyms, labels, notes, relations, grants, revisions
    - organization_service:  organizations and their members
    - folder_service:        folders and documents
    - authorization:         the configured relation backend (OpenFGA or local)
    - audit_service:         append-only audit trail
    - bootstrap:             default rows for a fresh installation
"""
