"""Services package — all business logic lives here, never in routers.

Files:
  auth.py        — registration, login, logout, profile edits
  identity.py    — IC verification behind a pluggable IdentityClient
  company.py     — SSM verification behind a pluggable SSMClient, ownership
  account.py     — account deactivation
  permohonan.py  — application lifecycle and completeness checks
  dokumen.py     — document upload / replace / delete
  catalog.py     — Module 4 catalog client (cached, with dev fallback)
  events.py      — domain events and the Celery-backed dispatcher
  listeners.py   — queued listeners (review queue, notification, AV scan)
  audit.py       — audit trail and retention purge

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""
