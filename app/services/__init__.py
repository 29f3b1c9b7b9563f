"""
Services layer - business logic, no HTTP.

Each service reads the Firestore client through get_db() and is exposed as
a module-level singleton (get_<name>_service) that routes receive through
FastAPI dependencies.
"""
