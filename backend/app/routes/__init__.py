# Routes package init
"""
Agora Backend: API Routes Package
==================================

Route Inventory:
    - users.py:   POST   /api/users, PUT /api/users/me/avatar, DELETE /api/users/me
    - posts.py:   POST   /api/posts, DELETE /api/posts/{id},
                  POST   /api/posts/{id}/comments, POST|DELETE /api/posts/{id}/likes
    - files.py:   POST   /api/files/posts, GET /api/files/{category}/{filename}
    - admin.py:   DELETE /api/admin/posts/{id}, DELETE /api/admin/users/{id},
                  POST   /api/admin/sweep
    - health.py:  GET    /health

Routes are THIN: they read the request, call a service, and shape the
response. Ownership checks, transactions and file handling live in services.
"""
