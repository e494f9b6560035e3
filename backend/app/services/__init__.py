# Services package init
"""
Agora Backend: Services Layer
==============================

Service Inventory:
    - storage_paths:       category → directory, filename → path (pure)
    - file_service:        validate, write, list and remove physical files
    - file_record_store:   `files` row CRUD on the caller's session
    - association_service: upload, attach to post, detach-and-delete
    - cascade_service:     user / post deletion across database and disk
    - sweeper:             orphan file reconciliation
    - social_service:      posts, comments, likes
    - user_service:        accounts and avatars

Ordering rule shared by every service that touches both stores:
    disk writes happen BEFORE the row that references them is committed;
    disk deletes happen AFTER the row that referenced them is committed.
    Any crash therefore leaves at most an orphan file, which the sweeper
    removes.
"""
