"""Pydantic schemas package.

Folder intent:
  common.py      — CamelModel base + HealthResponse (all schemas inherit CamelModel)
  auth.py        — register / login / profile / identity verification
  company.py     — SSM verification and company ownership
  permohonan.py  — license applications, butiran operasi and documents
  catalog.py     — Module 4 license types and document requirements
  audit.py       — audit log entries
"""
