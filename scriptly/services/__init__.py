# Services package init
"""
Scriptly Backend — Services Layer
===================================

Business rules, independent of HTTP. Each service is a stateless class
with a module-level singleton; methods take the request's AsyncSession
first and raise exceptions from scriptly.exceptions on rule violations.

Service Inventory:
    - policy:            Authorization Policy (pure predicates, no I/O)
    - security:          bcrypt hashing and JWT issue/verify
    - AuthService:       register, login, token resolution, passwords,
                         bootstrap admin
    - ChapterService:    chapter CRUD + Relationship Consistency Engine
    - UserService:       user lookup and profile updates
    - VouchService:      peer endorsements
    - EventService:      events and attendee registration
    - CategoryService:   tutorial categories
    - TutorialService:   Tutorial Workflow Engine

Services never commit. The session dependency commits once per request,
so a service that fails halfway leaves nothing behind.
"""
