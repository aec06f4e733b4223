# Routes package init
"""
Quorum Backend - API Routes Package
===================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - questions.py:      GET/POST /api/questions
                         GET      /api/questions/{id}
                         POST     /api/questions/{id}/accept
    - answers.py:        GET/POST /api/questions/{id}/answers
                         POST     /api/answers/{id}/vote
    - notifications.py:  GET      /api/notifications
                         POST     /api/notifications/{id}/read
    - taxonomy.py:       GET      /api/tags, /api/categories
    - health.py:         GET      /health

Routes stay THIN: they read the request, resolve the caller id, call one
service method, and return its schema. Errors are raised by the services and
turned into JSON by the handlers in main.py.
"""
