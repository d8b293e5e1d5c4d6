# Routes package init
"""
Scriptly Backend — API Routes Package
=======================================

Route Inventory:
    - auth.py:       /api/auth/register, /login, /profile
    - users.py:      /api/users, /{id}, /{id}/role, /{id}/vouch,
                     /{id}/registered-events, /{id}/password
    - chapters.py:   /api/chapters, /{id}
    - events.py:     /api/events, /{id}, /{id}/register, /{id}/deregister
    - tutorials.py:  /api/tutorials/categories, /categories/{id},
                     /api/tutorials, /{id}, /{id}/approve, /{id}/reject
    - health.py:     /health
    - deps.py:       auth dependencies shared by the routers above

Routes stay THIN: parse the request, call one service method, wrap the
result in a response schema. Permission rules live in services/policy.py.
"""
